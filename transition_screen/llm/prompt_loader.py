"""
Versioned rubric prompts.

Each prompt file under llm/prompts/ starts with a frontmatter block:
```
# PROMPT: claim_credibility
# VERSION: 1.0.0
# LAST_UPDATED: 2026-01-12
# DESCRIPTION: Brief description
# ---PROMPT_START---
[system prompt text]
```

The content hash covers only the text below the separator, so an assessment
can record exactly which rubric wording produced it.

Usage:
    from transition_screen.llm.prompt_loader import load_prompt

    prompt = load_prompt("claim_credibility")
    print(prompt.version, prompt.content_hash)
"""

import hashlib
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Dict, Optional

logger = logging.getLogger(__name__)

SEPARATOR_RE = re.compile(r"^#\s*---PROMPT_START---\s*$", re.MULTILINE)
FRONTMATTER_LINE_RE = re.compile(r"^#\s*(\w+):\s*(.+)$")


@dataclass(frozen=True)
class PromptInfo:
    """Loaded prompt with metadata."""

    name: str
    version: str
    content: str
    content_hash: str
    last_updated: Optional[str] = None
    description: Optional[str] = None

    def to_dict(self) -> Dict[str, str]:
        return {
            "prompt_name": self.name,
            "prompt_version": self.version,
            "prompt_hash": self.content_hash,
        }


def _compute_hash(content: str) -> str:
    """SHA256 of the prompt body, truncated to 16 chars."""
    return hashlib.sha256(content.strip().encode()).hexdigest()[:16]


def _parse_frontmatter(text: str) -> tuple[Dict[str, str], str]:
    """Split a prompt file into (metadata, content).

    Files without the separator are treated as content only.
    """
    match = SEPARATOR_RE.search(text)
    if not match:
        return {}, text.strip()

    metadata = {}
    for line in text[: match.start()].strip().splitlines():
        line_match = FRONTMATTER_LINE_RE.match(line.strip())
        if line_match:
            metadata[line_match.group(1).lower()] = line_match.group(2).strip()

    return metadata, text[match.end() :].strip()


def _get_prompts_dir() -> Path:
    return Path(__file__).parent / "prompts"


@lru_cache(maxsize=None)
def load_prompt(name: str, prompts_dir: Optional[Path] = None) -> PromptInfo:
    """Load a prompt by name (file stem, without .txt).

    Raises:
        FileNotFoundError: If the prompt file doesn't exist
    """
    if prompts_dir is None:
        prompts_dir = _get_prompts_dir()

    file_path = prompts_dir / f"{name}.txt"
    if not file_path.exists():
        raise FileNotFoundError(f"Prompt file not found: {file_path}")

    metadata, content = _parse_frontmatter(file_path.read_text(encoding="utf-8"))
    info = PromptInfo(
        name=metadata.get("prompt", name),
        version=metadata.get("version", "0.0.0"),
        content=content,
        content_hash=_compute_hash(content),
        last_updated=metadata.get("last_updated"),
        description=metadata.get("description"),
    )
    logger.debug(f"Loaded prompt {info.name} v{info.version} ({info.content_hash[:8]})")
    return info


def list_prompts(prompts_dir: Optional[Path] = None) -> list[PromptInfo]:
    """All prompts in the directory, sorted by name."""
    if prompts_dir is None:
        prompts_dir = _get_prompts_dir()
    return [load_prompt(path.stem, prompts_dir) for path in sorted(prompts_dir.glob("*.txt"))]
