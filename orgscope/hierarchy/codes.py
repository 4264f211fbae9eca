"""Child code helpers: parent code prefix + short uppercase suffix."""

from __future__ import annotations

import re
from typing import Iterable, Optional

from orgscope.errors import ValidationError

MAX_SUFFIX_LENGTH = 3
_SUFFIX_PATTERN = re.compile(r"^[A-Z0-9]+$")
_NUMERIC_SUFFIX = re.compile(r"^\d{3}$")


def validate_code_suffix(suffix: str) -> str:
    cleaned = (suffix or "").strip()
    if not cleaned:
        raise ValidationError("Code suffix is required.", context={"field": "code"})
    if len(cleaned) > MAX_SUFFIX_LENGTH:
        raise ValidationError(
            f"Code suffix cannot exceed {MAX_SUFFIX_LENGTH} characters.",
            context={"field": "code", "suffix": cleaned},
        )
    if not _SUFFIX_PATTERN.match(cleaned):
        raise ValidationError(
            "Code can only contain uppercase letters and numbers.",
            context={"field": "code", "suffix": cleaned},
        )
    return cleaned


def compose_code(parent_code: Optional[str], suffix: str) -> str:
    return f"{parent_code or ''}{validate_code_suffix(suffix)}"


def suggest_code(parent_code: Optional[str], sibling_codes: Iterable[str]) -> str:
    """Next free three-digit suffix after the highest numeric sibling suffix."""

    prefix = parent_code or ""
    numbers = [
        int(code[len(prefix):])
        for code in sibling_codes
        if code.startswith(prefix) and _NUMERIC_SUFFIX.match(code[len(prefix):])
    ]
    return f"{prefix}{(max(numbers) if numbers else 0) + 1:03d}"


__all__ = ["MAX_SUFFIX_LENGTH", "compose_code", "suggest_code", "validate_code_suffix"]
