"""
Shared text parsing utilities for LLM response extraction.

Model output is treated as untrusted text: every helper here returns None
(or a cleaned string) instead of raising on input it cannot interpret.
"""

import base64
import binascii
import json
import re
from typing import Any, Optional


_CODE_FENCE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_DATA_URL = re.compile(r"^data:(?P<mime>[\w/+.-]+);base64,(?P<data>.+)$", re.DOTALL)


def strip_code_fences(content: str) -> str:
    """Return the body of the first ``` fence, or the content unchanged."""
    match = _CODE_FENCE.search(content)
    if match:
        return match.group(1).strip()
    return content.strip()


def extract_json_object(content: Optional[str]) -> Optional[dict[str, Any]]:
    """
    Extract a JSON object from a free-text LLM answer.

    Tolerates markdown fences and prose around the object.

    Args:
        content: Raw response text

    Returns:
        The parsed dict, or None if no object could be parsed
    """
    if not content:
        return None

    text = strip_code_fences(content)
    candidates = [text]
    match = _JSON_OBJECT.search(text)
    if match and match.group(0) != text:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def coerce_float(value: Any) -> Optional[float]:
    """Best-effort float conversion ("3,5" and "3.5mm" included)."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        match = re.search(r"-?\d+(?:[.,]\d+)?", value)
        if match:
            return float(match.group(0).replace(",", "."))
    return None


def decode_data_url(url: str) -> Optional[tuple[bytes, str]]:
    """
    Decode a base64 data URL.

    Returns:
        (bytes, mime_type), or None if the URL is not a valid base64 data URL
    """
    match = _DATA_URL.match(url.strip())
    if not match:
        return None
    try:
        data = base64.b64decode(match.group("data"), validate=False)
    except (binascii.Error, ValueError):
        return None
    return data, match.group("mime")


# =============================================================================
# Prompt hygiene
# =============================================================================

_INJECTION_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"```(?:system|instruction|prompt)[\s\S]*?```", re.IGNORECASE), ""),
    (re.compile(r"(?:^|\n)\s*(?:system|assistant|user|instruction|role)\s*:", re.IGNORECASE), ""),
    (
        re.compile(
            r"(?:ignore|forget|disregard|override|bypass)\s+(?:all\s+)?"
            r"(?:previous|above|prior|earlier)\s+(?:instructions?|context|prompts?|rules?)",
            re.IGNORECASE,
        ),
        "[removed]",
    ),
    (
        re.compile(
            r"(?:you\s+are\s+now|act\s+as|pretend\s+(?:to\s+be|you\s+are)|from\s+now\s+on\s+you\s+are)",
            re.IGNORECASE,
        ),
        "[removed]",
    ),
    (
        re.compile(
            r"(?:ignore|ignor[ea]|esqueça|desconsider[ea]|sobrescreva|pule|burle)\s+.*?\s+"
            r"(?:instruções?|contexto|prompts?|regras?|anteriores?|sistema)",
            re.IGNORECASE,
        ),
        "[removed]",
    ),
]


def sanitize_for_prompt(text: Optional[str], max_length: int = 1000) -> str:
    """
    Neutralize prompt-injection patterns in user-supplied free text.

    Args:
        text: Text typed by a user (preferences, notes)
        max_length: Hard cap on the returned length

    Returns:
        Sanitized text, safe to interpolate into a prompt
    """
    if not text:
        return ""
    sanitized = text
    for pattern, replacement in _INJECTION_PATTERNS:
        sanitized = pattern.sub(replacement, sanitized)
    return sanitized.strip()[:max_length]


def sanitize_analysis_text(text: Optional[str], max_length: int = 500) -> str:
    """Strip markup and instruction prefixes from model-generated text before reuse."""
    if not text:
        return ""
    cleaned = re.sub(
        r"^(system|instructions|ignore previous|disregard|override)\s*:",
        "",
        text,
        flags=re.IGNORECASE | re.MULTILINE,
    )
    cleaned = re.sub(r"```[\s\S]*?```", "", cleaned)
    cleaned = re.sub(r"#{1,6}\s", "", cleaned)
    cleaned = re.sub(r"\*{1,2}([^*]+)\*{1,2}", r"\1", cleaned)
    cleaned = re.sub(r"<[^>]+>", "", cleaned)
    return cleaned[:max_length].strip()
