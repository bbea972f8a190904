"""Safe, typed reads from loosely-typed external records.

External records are read-only mappings from string keys to a small set of
value shapes: ``str``, ``bool``, ``int``, ``float``, ``datetime``, a nested
mapping, a list, or ``None``.  Keys may be absent and values may not have
the shape a field expects.

Every reader here returns the caller-supplied default instead of raising.
Absent keys are logged at DEBUG; values of the wrong shape or that fail to
parse are logged at WARNING.  Mapping code must go through these readers
rather than indexing the record directly.

``get_property`` dispatches on a target type for callers that want a single
entry point; the ``get_*`` functions are the typed readers it delegates to.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping, Sequence
from datetime import date, datetime, timezone
from typing import Any, TypeAlias

logger = logging.getLogger(__name__)

# Seconds followed by a fractional part of any length.
_FRACTION = re.compile(r"(:\d{2})\.(\d+)")

ExternalValue: TypeAlias = (
    str
    | bool
    | int
    | float
    | datetime
    | Mapping[str, Any]
    | Sequence[Any]
    | None
)
ExternalRecord: TypeAlias = Mapping[str, ExternalValue]

_MISSING = object()

_TRUE_STRINGS = frozenset({"true", "1", "yes"})
_FALSE_STRINGS = frozenset({"false", "0", "no"})


# ---------------------------------------------------------------------------
# Record inspection
# ---------------------------------------------------------------------------


def has_property(record: ExternalRecord, key: str) -> bool:
    """Return ``True`` if *key* is present in *record* (even if ``None``)."""
    return isinstance(record, Mapping) and key in record


def property_names(record: ExternalRecord) -> list[str]:
    """Return the keys of *record* in their original order."""
    if not isinstance(record, Mapping):
        return []
    return [str(k) for k in record.keys()]


def log_properties(
    record: ExternalRecord, log: logging.Logger, context: str
) -> None:
    """Dump every property of *record* at DEBUG level, for troubleshooting."""
    if not log.isEnabledFor(logging.DEBUG):
        return
    log.debug("Properties of %s:", context)
    for key in property_names(record):
        value = record[key]
        log.debug("  %s = %r (%s)", key, value, type(value).__name__)


def _lookup(record: ExternalRecord, key: str) -> Any:
    if not isinstance(record, Mapping):
        logger.warning(
            "Cannot read '%s': record is %s, not a mapping",
            key,
            type(record).__name__,
        )
        return _MISSING
    value = record.get(key, _MISSING)
    if value is _MISSING:
        logger.debug("Property '%s' not present in record", key)
    return value


def _mismatch(key: str, expected: str, value: Any) -> None:
    logger.warning(
        "Property '%s' is not a valid %s (got %s %r); using default",
        key,
        expected,
        type(value).__name__,
        value,
    )


# ---------------------------------------------------------------------------
# Scalar readers
# ---------------------------------------------------------------------------


def get_string(
    record: ExternalRecord, key: str, default: str | None = None
) -> str | None:
    """Read a string, trimmed.

    Blank strings count as absent.  Numbers, booleans and timestamps are
    converted to their string form; nested records and lists are rejected.
    """
    value = _lookup(record, key)
    if value is _MISSING or value is None:
        return default
    match value:
        case str():
            text = value
        case datetime():
            text = value.isoformat()
        case bool() | int() | float():
            text = str(value)
        case _:
            _mismatch(key, "string", value)
            return default
    text = text.strip()
    return text if text else default


def get_optional_bool(record: ExternalRecord, key: str) -> bool | None:
    """Read a boolean, or ``None`` when absent or unparseable."""
    value = _lookup(record, key)
    if value is _MISSING or value is None:
        return None
    match value:
        case bool():
            return value
        case int():
            return value != 0
        case str():
            lowered = value.strip().lower()
            if lowered in _TRUE_STRINGS:
                return True
            if lowered in _FALSE_STRINGS:
                return False
    _mismatch(key, "boolean", value)
    return None


def get_bool(
    record: ExternalRecord, key: str, default: bool = False
) -> bool:
    """Read a boolean, falling back to *default*."""
    result = get_optional_bool(record, key)
    return default if result is None else result


def get_optional_int(record: ExternalRecord, key: str) -> int | None:
    """Read an integer, or ``None`` when absent or unparseable.

    Accepts ints, integral floats and numeric strings.  Booleans are
    rejected even though ``bool`` subclasses ``int``.
    """
    value = _lookup(record, key)
    if value is _MISSING or value is None:
        return None
    match value:
        case bool():
            pass
        case int():
            return value
        case float() if value.is_integer():
            return int(value)
        case str():
            try:
                return int(value.strip())
            except ValueError:
                pass
    _mismatch(key, "integer", value)
    return None


def get_int(record: ExternalRecord, key: str, default: int = 0) -> int:
    """Read an integer, falling back to *default*."""
    result = get_optional_int(record, key)
    return default if result is None else result


def _microseconds(match: re.Match[str]) -> str:
    # fromisoformat on 3.10 takes exactly 3 or 6 fractional digits.
    return f"{match.group(1)}.{match.group(2)[:6].ljust(6, '0')}"


def get_datetime(record: ExternalRecord, key: str) -> datetime | None:
    """Read a timestamp as a timezone-aware UTC ``datetime``.

    Accepts ``datetime``, ``date`` and ISO 8601 strings (a trailing ``Z``
    is understood; fractions beyond microseconds are truncated).  Naive
    values are taken to be UTC.  Returns ``None`` when absent or
    unparseable.
    """
    value = _lookup(record, key)
    if value is _MISSING or value is None:
        return None
    match value:
        case datetime():
            parsed = value
        case date():
            parsed = datetime(value.year, value.month, value.day)
        case str():
            text = value.strip()
            if text.endswith("Z"):
                text = text[:-1] + "+00:00"
            text = _FRACTION.sub(_microseconds, text, count=1)
            try:
                parsed = datetime.fromisoformat(text)
            except ValueError:
                _mismatch(key, "timestamp", value)
                return None
        case _:
            _mismatch(key, "timestamp", value)
            return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


# ---------------------------------------------------------------------------
# Structured readers
# ---------------------------------------------------------------------------


def get_record(
    record: ExternalRecord,
    key: str,
    default: ExternalRecord | None = None,
) -> ExternalRecord | None:
    """Read a nested record; anything that is not a mapping yields *default*."""
    value = _lookup(record, key)
    if value is _MISSING or value is None:
        return default
    if isinstance(value, Mapping):
        return value
    _mismatch(key, "nested record", value)
    return default


def get_array(
    record: ExternalRecord,
    key: str,
    default: list[Any] | None = None,
) -> list[Any] | None:
    """Read an array; strings and other non-sequences yield *default*."""
    value = _lookup(record, key)
    if value is _MISSING or value is None:
        return default
    if isinstance(value, (list, tuple)):
        return list(value)
    _mismatch(key, "array", value)
    return default


# ---------------------------------------------------------------------------
# Generic entry point
# ---------------------------------------------------------------------------


def get_property(
    record: ExternalRecord,
    key: str,
    as_type: type,
    default: Any = None,
) -> Any:
    """Read *key* from *record* as *as_type*, never raising.

    Args:
        record: The external record.
        key: Property name.
        as_type: One of ``str``, ``bool``, ``int``, ``datetime``, ``dict``
            (nested record) or ``list``.
        default: Value returned when the property is absent, of the wrong
            shape or unparseable.  Ignored for ``datetime``, which always
            falls back to ``None``.

    Returns:
        The coerced value or *default*.
    """
    try:
        if as_type is str:
            return get_string(record, key, default)
        if as_type is bool:
            return get_bool(record, key, bool(default))
        if as_type is int:
            return get_int(record, key, default if default is not None else 0)
        if as_type is datetime:
            return get_datetime(record, key)
        if as_type is dict:
            return get_record(record, key, default)
        if as_type is list:
            return get_array(record, key, default)

        value = _lookup(record, key)
        if isinstance(value, as_type):
            return value
        return default
    except Exception:
        logger.warning(
            "Failed to read property '%s' as %s",
            key,
            getattr(as_type, "__name__", as_type),
            exc_info=True,
        )
        return default
