"""Input cleaning for names and notes before they are stored."""

import re
from typing import Optional

from config import VALIDATION_LIMITS
from errors import ValidationError

_SCRIPT_BLOCK = re.compile(r"<(script|style)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"</?\s*([a-zA-Z][a-zA-Z0-9]*)\b[^>]*>")
_NAME_DISALLOWED = re.compile(r"[^A-Za-z0-9\s\-'&]")
_NOTES_ALLOWED_TAGS = {"b", "i", "em", "strong", "br"}


def sanitize_string(text: Optional[str]) -> str:
    """Strip all HTML tags (keeping their text) and surrounding whitespace."""
    if not text:
        return ""
    cleaned = _SCRIPT_BLOCK.sub("", text)
    cleaned = _TAG.sub("", cleaned)
    return cleaned.strip()


def sanitize_name(name: Optional[str]) -> str:
    """Letters, digits, spaces, hyphens, apostrophes and ampersands only."""
    return _NAME_DISALLOWED.sub("", sanitize_string(name)).strip()


def sanitize_notes(notes: Optional[str]) -> str:
    """Keep basic formatting tags, drop scripts and every other tag."""
    if not notes:
        return ""
    cleaned = _SCRIPT_BLOCK.sub("", notes)

    def keep_simple(match: re.Match) -> str:
        tag = match.group(1).lower()
        if tag not in _NOTES_ALLOWED_TAGS:
            return ""
        closing = match.group(0).startswith("</")
        # Attributes are always dropped
        return f"</{tag}>" if closing else f"<{tag}>"

    return _TAG.sub(keep_simple, cleaned).strip()


def sanitize_with_length(text: Optional[str], min_length: int, max_length: int, field_name: str = "Input") -> str:
    """Sanitize a name and enforce its length limits."""
    cleaned = sanitize_name(text)
    if len(cleaned) < min_length:
        raise ValidationError(f"{field_name} must be at least {min_length} characters", text)
    if len(cleaned) > max_length:
        raise ValidationError(f"{field_name} must be no more than {max_length} characters", text)
    return cleaned


def clean_player_name(name: Optional[str]) -> str:
    return sanitize_with_length(
        name,
        VALIDATION_LIMITS["player_name_min"],
        VALIDATION_LIMITS["player_name_max"],
        "Player name",
    )


def clean_group_name(name: Optional[str]) -> str:
    return sanitize_with_length(
        name,
        VALIDATION_LIMITS["group_name_min"],
        VALIDATION_LIMITS["group_name_max"],
        "Group name",
    )


def clean_notes(notes: Optional[str]) -> Optional[str]:
    """Sanitized notes, or None when nothing is left."""
    cleaned = sanitize_notes(notes)
    if len(cleaned) > VALIDATION_LIMITS["notes_max"]:
        raise ValidationError(
            f"Notes must be no more than {VALIDATION_LIMITS['notes_max']} characters", notes
        )
    return cleaned or None
