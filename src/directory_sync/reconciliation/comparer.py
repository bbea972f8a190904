"""Field comparison used by change detection.

Free-text fields pick up incidental whitespace from upstream systems, so
strings are compared after normalisation: ``None`` and blank are the same
empty value and surrounding whitespace is ignored.  Structured fields
(numbers, booleans, enums) compare by exact equality.
"""

from __future__ import annotations

from typing import Any


def normalize_string(value: str | None) -> str | None:
    """Return *value* trimmed, or ``None`` if it is ``None`` or blank."""
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def has_string_changed(new_value: str | None, old_value: str | None) -> bool:
    """Return ``True`` if the two strings differ after normalisation.

    Comparison is ordinal (case-sensitive).

    Examples:
        >>> has_string_changed(" Alice ", "Alice")
        False
        >>> has_string_changed("", None)
        False
        >>> has_string_changed("Alice", "Bob")
        True
    """
    return normalize_string(new_value) != normalize_string(old_value)


def has_value_changed(new_value: Any, old_value: Any) -> bool:
    """Exact-equality comparison for non-string fields."""
    return new_value != old_value
