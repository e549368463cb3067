"""Strict decoding of model output into pydantic schemas.

Models often wrap JSON in ```json fences or add a sentence before or after
the object. The parser strips fences, then takes the first balanced {...}
object (string-aware, so braces inside values don't confuse it) and
validates it against the target schema. Anything that does not validate is
rejected; nothing is repaired or guessed.
"""

import re
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T", bound=BaseModel)

MARKDOWN_JSON_RE = re.compile(r"```(?:json)?\s*\n?(.*?)\n?```", re.DOTALL)


class ResponseParseError(ValueError):
    """Model output could not be decoded into the expected schema."""


def strip_markdown_json(text: str) -> str:
    """Strip markdown code blocks from LLM response."""
    match = MARKDOWN_JSON_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced top-level JSON object in text, or None."""
    start = text.find("{")
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == "\\":
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == "{":
                depth += 1
            elif ch == "}":
                depth -= 1
                if depth == 0:
                    return text[start : i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find("{", start + 1)
    return None


def parse_model_output(text: Optional[str], model_cls: Type[T]) -> T:
    """Decode raw model text into model_cls.

    Raises:
        ResponseParseError: If no JSON object is found or validation fails
    """
    if not text or not text.strip():
        raise ResponseParseError("Empty model output")

    candidate = extract_json_object(strip_markdown_json(text))
    if candidate is None:
        raise ResponseParseError(f"No JSON object found in model output ({len(text)} chars)")

    try:
        return model_cls.model_validate_json(candidate)
    except ValidationError as e:
        raise ResponseParseError(
            f"Model output failed {model_cls.__name__} validation: {e.error_count()} error(s)"
        ) from e
