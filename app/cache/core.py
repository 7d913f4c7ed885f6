"""
Core cache data structures.
"""
import json
import math
import time
from dataclasses import dataclass
from typing import Any, Dict, Generic, Optional, TypeVar

T = TypeVar("T")

# Default time-to-live for entries written without an explicit TTL (5 minutes)
DEFAULT_TTL_MS = 5 * 60 * 1000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


class CacheError(Exception):
    """Base class for cache-layer errors."""


class CorruptRecordError(CacheError):
    """A durable record could not be decoded into a cache entry."""


@dataclass
class CacheEntry(Generic[T]):
    """
    A cached value with the metadata needed to evaluate expiry.

    The value is opaque: it is stored and returned as-is, never copied
    or inspected.
    """
    key: str
    value: T
    stored_at: int  # epoch milliseconds
    ttl: int        # milliseconds

    def age(self, now: int) -> int:
        """Milliseconds since the entry was written."""
        return now - self.stored_at

    def is_expired(self, now: int) -> bool:
        """An entry is still fresh at exactly stored_at + ttl."""
        return now - self.stored_at > self.ttl

    def to_record(self) -> Dict[str, Any]:
        return {
            "value": self.value,
            "stored_at": self.stored_at,
            "ttl": self.ttl,
        }

    def dumps(self) -> str:
        """Serialize to the durable record format (JSON object)."""
        return json.dumps(self.to_record())

    @classmethod
    def loads(cls, key: str, payload: str) -> "CacheEntry[Any]":
        """
        Decode a durable record.

        Raises:
            CorruptRecordError: payload is not a well-formed record
        """
        try:
            record = json.loads(payload)
        except (TypeError, ValueError, RecursionError) as e:
            raise CorruptRecordError(f"Invalid JSON for {key}: {e}") from e

        if not isinstance(record, dict):
            raise CorruptRecordError(f"Record for {key} is not an object")

        missing = [f for f in ("value", "stored_at", "ttl") if f not in record]
        if missing:
            raise CorruptRecordError(f"Record for {key} missing fields: {missing}")

        stored_at, ttl = record["stored_at"], record["ttl"]
        # json accepts Infinity, NaN and 1e400, none of which convert to int
        if isinstance(stored_at, bool) or not _is_finite_number(stored_at):
            raise CorruptRecordError(f"Record for {key} has invalid stored_at")
        if isinstance(ttl, bool) or not _is_finite_number(ttl):
            raise CorruptRecordError(f"Record for {key} has invalid ttl")

        return cls(key=key, value=record["value"], stored_at=int(stored_at), ttl=int(ttl))


def _is_finite_number(value: Any) -> bool:
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def resolve_ttl(ttl: Optional[int], default: int) -> int:
    """A missing or zero TTL falls back to the default."""
    return ttl if ttl else default
