"""Verification code extraction shared by adapters."""

import re

_CODE_PATTERN = re.compile(r"\d{3,}")


def find_code(text: object) -> str | None:
    """First run of 3+ digits: "Your code is 482913" -> "482913"."""
    if not isinstance(text, str):
        return None
    match = _CODE_PATTERN.search(text)
    return match.group(0) if match else None


def first_code(*candidates: object) -> tuple[str, str] | None:
    """Scan candidate fields in order; return (code, source_text) for the first hit."""
    for candidate in candidates:
        code = find_code(candidate)
        if code is not None:
            return code, str(candidate)
    return None
