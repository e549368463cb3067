"""
Central configuration for the screening engine.

Read once from the environment by load_config() and immutable afterwards.
Environment variables:
  - SCORING_MODE (rule | ai | hybrid, default: hybrid)
  - GROQ_API_KEY (primary provider)
  - GROQ_API_KEY_SECONDARY (secondary provider, ignored when equal to the primary key)
  - ASI1_API_KEY (tertiary provider)
  - GROQ_MODEL (default: meta-llama/llama-4-maverick-17b-128e-instruct)
  - ASI1_MODEL (default: asi1-mini)
  - LLM_TIMEOUT_SECONDS (default: 60)
  - LLM_SEED (default: 42)
  - MIN_DOCUMENT_CHARS (default: 100)
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from transition_screen.constants import (
    DEFAULT_LLM_SEED,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    MIN_DOCUMENT_CHARS_FOR_AI,
)
from transition_screen.llm.llm_client import (
    ASI1_API_BASE,
    GROQ_API_BASE,
    MODEL_ASI1_MINI,
    MODEL_GROQ_MAVERICK,
    PROVIDER_ASI1,
    PROVIDER_GROQ_PRIMARY,
    PROVIDER_GROQ_SECONDARY,
    ProviderConfig,
)
from transition_screen.schemas.common import ScoringMode

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScreeningConfig:
    """Immutable settings for one engine instance."""

    scoring_mode: ScoringMode = ScoringMode.HYBRID
    providers: tuple[ProviderConfig, ...] = ()
    timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS
    seed: Optional[int] = DEFAULT_LLM_SEED
    min_document_chars: int = MIN_DOCUMENT_CHARS_FOR_AI

    @property
    def provider_names(self) -> list[str]:
        return [p.name for p in self.providers]


def parse_scoring_mode(value: Optional[str]) -> ScoringMode:
    """Parse a mode name; empty means the default (hybrid).

    Raises:
        ValueError: If the value is not rule, ai or hybrid
    """
    if not value or not value.strip():
        return ScoringMode.HYBRID
    try:
        return ScoringMode(value.strip().lower())
    except ValueError:
        valid = ", ".join(m.value for m in ScoringMode)
        raise ValueError(f"Unknown scoring mode '{value}'. Expected one of: {valid}") from None


def _get_number(environ: Mapping[str, str], name: str, default, cast):
    raw = environ.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be a number, got '{raw}'") from None


def build_provider_chain(environ: Mapping[str, str]) -> tuple[ProviderConfig, ...]:
    """Ordered provider chain from whichever API keys are set."""
    groq_model = environ.get("GROQ_MODEL") or MODEL_GROQ_MAVERICK
    asi1_model = environ.get("ASI1_MODEL") or MODEL_ASI1_MINI

    providers = []
    groq_primary = environ.get("GROQ_API_KEY")
    if groq_primary:
        providers.append(ProviderConfig(PROVIDER_GROQ_PRIMARY, GROQ_API_BASE, groq_primary, groq_model))

    groq_secondary = environ.get("GROQ_API_KEY_SECONDARY")
    if groq_secondary and groq_secondary != groq_primary:
        providers.append(ProviderConfig(PROVIDER_GROQ_SECONDARY, GROQ_API_BASE, groq_secondary, groq_model))

    asi1_key = environ.get("ASI1_API_KEY")
    if asi1_key:
        providers.append(ProviderConfig(PROVIDER_ASI1, ASI1_API_BASE, asi1_key, asi1_model))

    return tuple(providers)


def load_config(environ: Optional[Mapping[str, str]] = None) -> ScreeningConfig:
    """
    Build the configuration from environment variables.

    Args:
        environ: Mapping to read instead of os.environ (tests)

    Raises:
        ValueError: On an unknown scoring mode or a non-numeric setting
    """
    if environ is None:
        environ = os.environ

    config = ScreeningConfig(
        scoring_mode=parse_scoring_mode(environ.get("SCORING_MODE")),
        providers=build_provider_chain(environ),
        timeout_seconds=_get_number(environ, "LLM_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS, float),
        seed=_get_number(environ, "LLM_SEED", DEFAULT_LLM_SEED, int),
        min_document_chars=_get_number(environ, "MIN_DOCUMENT_CHARS", MIN_DOCUMENT_CHARS_FOR_AI, int),
    )
    if not config.providers:
        logger.warning("No provider API keys configured; AI evaluation will be unavailable")
    else:
        logger.debug(f"Provider chain: {' -> '.join(config.provider_names)}")
    return config
