"""
Provider gateway using LiteLLM for OpenAI-compatible chat endpoints.

Ordered provider chain with fallback on transient errors:
    Groq (primary key) -> Groq (secondary key) -> ASI1

Every provider is attempted at most once per call. Rate limits, 5xx,
timeouts and connection errors move on to the next provider; 400/401/403
abort the chain since the next provider would reject the same request.

Usage:
    from transition_screen.llm.llm_client import ProviderGateway

    gateway = ProviderGateway(config.providers, timeout_seconds=60, seed=42)
    response = gateway.call(system_prompt, user_prompt)
    if response.success:
        ...
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import litellm
from litellm import completion

from transition_screen.constants import (
    COMPONENT_MAX_TOKENS,
    DEFAULT_LLM_SEED,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
)

# Suppress verbose LiteLLM logging
litellm.suppress_debug_info = True

logging.getLogger("LiteLLM").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


# =============================================================================
# PROVIDER CONSTANTS
# =============================================================================

GROQ_API_BASE = "https://api.groq.com/openai/v1"
ASI1_API_BASE = "https://api.asi1.ai/v1"

MODEL_GROQ_MAVERICK = "meta-llama/llama-4-maverick-17b-128e-instruct"
MODEL_ASI1_MINI = "asi1-mini"

PROVIDER_GROQ_PRIMARY = "groq_primary"
PROVIDER_GROQ_SECONDARY = "groq_secondary"
PROVIDER_ASI1 = "asi1"

NO_PROVIDERS_ERROR = "No API keys configured. Set GROQ_API_KEY in environment."

# Status codes that mean the request itself is bad; another provider won't help
TERMINAL_STATUS_CODES = frozenset({400, 401, 403})


@dataclass(frozen=True)
class ProviderConfig:
    """One tier of the provider chain."""

    name: str
    api_base: str
    api_key: str
    model: str

    @property
    def litellm_model(self) -> str:
        # All tiers speak the OpenAI chat completions protocol
        return f"openai/{self.model}"

    def __repr__(self) -> str:
        return f"ProviderConfig(name={self.name!r}, api_base={self.api_base!r}, model={self.model!r})"


@dataclass
class GatewayResponse:
    """Outcome of one gateway call, successful or not."""

    success: bool
    content: Optional[str] = None
    provider: str = "none"
    model: str = "none"
    duration_ms: int = 0
    error: Optional[str] = None
    fallback_used: bool = False
    attempts: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "provider": self.provider,
            "model": self.model,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "fallback_used": self.fallback_used,
            "attempts": self.attempts,
            "response_length": len(self.content or ""),
        }


class ProviderCallError(Exception):
    """A single provider attempt failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


def should_fallback(status_code: Optional[int], error: Optional[str] = None) -> bool:
    """Decide whether a failed attempt should move on to the next provider.

    400, 401 and 403 abort the chain whatever the error text says. Rate limits,
    5xx, timeouts, connection errors and unrecognized failures move on.
    """
    return status_code not in TERMINAL_STATUS_CODES


class ProviderGateway:
    """Calls the configured providers in order until one succeeds."""

    def __init__(
        self,
        providers: tuple[ProviderConfig, ...],
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        seed: Optional[int] = DEFAULT_LLM_SEED,
    ):
        self.providers = tuple(providers)
        self.timeout_seconds = timeout_seconds
        self.seed = seed

    @property
    def is_configured(self) -> bool:
        return bool(self.providers)

    def call(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: float = 0.0,
        max_tokens: int = COMPONENT_MAX_TOKENS,
    ) -> GatewayResponse:
        if not self.providers:
            return GatewayResponse(success=False, error=NO_PROVIDERS_ERROR)

        last_error = ""
        fallback_used = False
        attempts = 0
        start = time.monotonic()

        for index, provider in enumerate(self.providers):
            if index > 0:
                fallback_used = True
                logger.info(f"Falling back to {provider.name}...")

            attempts += 1
            try:
                content = self._call_provider(provider, system_prompt, user_prompt, temperature, max_tokens)
            except ProviderCallError as e:
                last_error = str(e)
                if should_fallback(e.status_code, last_error):
                    logger.warning(f"Transient error from {provider.name}: {last_error}")
                    continue
                logger.error(f"Terminal error from {provider.name}: {last_error}. Not trying other providers.")
                break

            duration_ms = int((time.monotonic() - start) * 1000)
            logger.info(
                f"LLM call served by {provider.name} ({provider.model}) in {duration_ms}ms"
                f"{' after fallback' if fallback_used else ''}"
            )
            return GatewayResponse(
                success=True,
                content=content,
                provider=provider.name,
                model=provider.model,
                duration_ms=duration_ms,
                fallback_used=fallback_used,
                attempts=attempts,
            )

        return GatewayResponse(
            success=False,
            duration_ms=int((time.monotonic() - start) * 1000),
            error=last_error or "Unknown error",
            fallback_used=fallback_used,
            attempts=attempts,
        )

    def _call_provider(
        self,
        provider: ProviderConfig,
        system_prompt: str,
        user_prompt: str,
        temperature: float,
        max_tokens: int,
    ) -> str:
        """One completion call against one provider. Raises ProviderCallError."""
        kwargs = {
            "model": provider.litellm_model,
            "api_base": provider.api_base,
            "api_key": provider.api_key,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "timeout": self.timeout_seconds,
            # Fallback is handled here, one attempt per provider
            "num_retries": 0,
        }
        if self.seed is not None:
            kwargs["seed"] = self.seed

        try:
            response = completion(**kwargs)
        except (litellm.Timeout, litellm.APIConnectionError) as e:
            raise ProviderCallError(f"{provider.name} request failed (timeout/connection): {e}") from e
        except Exception as e:
            status_code = getattr(e, "status_code", None)
            if status_code is not None:
                message = f"{provider.name} API error {status_code}: {str(e)[:200]}"
            else:
                message = f"{provider.name} request failed: {type(e).__name__}: {e}"
            raise ProviderCallError(message, status_code=status_code) from e

        if not response.choices:
            raise ProviderCallError(f"{provider.name} returned empty choices")

        content = response.choices[0].message.content
        if not content:
            raise ProviderCallError(f"{provider.name} returned empty response")
        return content
