"""Record normalizer: raw subsystem values to Finding."""

import json
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from hosttriage.core import logging as log
from hosttriage.models.finding import ERROR_MARKER, INFO_MARKER, Finding, FindingCategory

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


# Registry value types whose raw bytes are UTF-16-LE text
REG_SZ = 1
REG_EXPAND_SZ = 2
REG_MULTI_SZ = 7
STRING_VALUE_TYPES = frozenset({REG_SZ, REG_EXPAND_SZ, REG_MULTI_SZ})


def _encodable(text: str) -> str:
    """Escape lone surrogates so the text always encodes as UTF-8.

    Undecodable file names and unpaired UTF-16 registry data surface as
    surrogate code points; they become ``\\udcff``-style escapes.
    """
    try:
        text.encode("utf-8")
    except UnicodeEncodeError:
        return text.encode("utf-8", "backslashreplace").decode("utf-8")
    return text


def to_text(value: Any) -> str:
    """Coerce a raw value to trimmed text.

    None becomes "", bytes that are clean UTF-8 are decoded and any
    other bytes are rendered as hex, sequences such as REG_MULTI_SZ data
    are joined with single spaces and mappings become sorted JSON. The
    result always encodes as UTF-8. Never raises: anything that cannot
    be rendered becomes "".
    """
    try:
        if value is None:
            return ""
        if isinstance(value, str):
            return _encodable(value.strip())
        if isinstance(value, bytes | bytearray):
            raw = bytes(value)
            try:
                text = raw.decode("utf-8")
            except UnicodeDecodeError:
                return raw.hex()
            if "\x00" in text or not text.strip().isprintable():
                return raw.hex()
            return text.strip()
        if isinstance(value, Mapping):
            return _encodable(json.dumps(value, sort_keys=True, default=str, ensure_ascii=False))
        if isinstance(value, list | tuple | set | frozenset):
            parts = (to_text(v) for v in value)
            return " ".join(p for p in parts if p)
        if isinstance(value, datetime):
            return value.isoformat()
        return _encodable(str(value).strip())
    except Exception as e:
        log.debug("Value coercion failed", type=type(value).__name__, error=str(e))
        return ""


class FindingNormalizer:
    """Builds Findings with a shared clock.

    Args:
        clock: Callable returning the capture time; injectable for tests
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or utc_now

    def timestamp(self) -> str:
        """Current capture time as an ISO-8601 string."""
        try:
            ts = self._clock()
            if ts.tzinfo is None:
                ts = ts.replace(tzinfo=UTC)
            return ts.astimezone(UTC).isoformat()
        except Exception as e:
            log.debug("Clock failed", error=str(e))
            return ""

    def normalize(
        self,
        category: FindingCategory,
        location: Any,
        name: Any,
        value: Any,
        user: Any = None,
        extra: Any = None,
    ) -> Finding:
        """Convert one raw record into a Finding.

        Args:
            category: Indicator category
            location: Subsystem-specific locator
            name: Entry name within location
            value: Payload of interest
            user: Associated account, if the subsystem has one
            extra: Auxiliary context

        Returns:
            Immutable Finding with every text field coerced
        """
        return Finding(
            timestamp=self.timestamp(),
            category=category,
            location=to_text(location),
            name=to_text(name),
            value=to_text(value),
            user=to_text(user),
            extra=to_text(extra),
        )

    def error_marker(self, category: FindingCategory, location: str, message: Any) -> Finding:
        """Finding that records a total collector failure."""
        text = to_text(message) or "unknown error"
        return self.normalize(category, location, ERROR_MARKER, text)

    def info_marker(self, category: FindingCategory, location: str, message: Any) -> Finding:
        """Informational Finding, e.g. for an inaccessible namespace."""
        return self.normalize(category, location, INFO_MARKER, message)


def registry_text(data: Any, value_type: int) -> str:
    """Render registry value data according to its value type.

    String types delivered as raw bytes are decoded as UTF-16-LE and cut
    at the terminating NUL (REG_MULTI_SZ keeps every non-empty string).
    Binary and other types go through ``to_text``, so non-text bytes
    come out as hex.
    """
    if not isinstance(data, bytes | bytearray) or value_type not in STRING_VALUE_TYPES:
        return to_text(data)
    if len(data) % 2:
        data = bytes(data) + b"\x00"
    strings = bytes(data).decode("utf-16-le", errors="replace").split("\x00")
    if value_type == REG_MULTI_SZ:
        return to_text(strings)
    return to_text(strings[0])
