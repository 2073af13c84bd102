"""
Relay data model.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Optional, Tuple

from shared.errors import DecodeError

# Ordered raw (name, value) pairs as received; a name may repeat
HeaderList = List[Tuple[bytes, bytes]]


@dataclass
class JsonArrayResult:
    """Ordered sequence of opaque JSON values.

    Serializes as a bare JSON array. Values keep the order they were
    appended in, first page first.
    """

    values: List[Any] = field(default_factory=list)

    @classmethod
    def from_json(cls, body: str) -> "JsonArrayResult":
        """Parse an upstream page body, which must be a JSON array."""
        try:
            decoded = json.loads(body)
        except ValueError as exc:
            raise DecodeError(str(exc), body) from exc

        if not isinstance(decoded, list):
            raise DecodeError(f"expected a JSON array, got {type(decoded).__name__}", body)
        return cls(decoded)

    def extend(self, other: Iterable[Any]) -> None:
        if isinstance(other, JsonArrayResult):
            other = other.values
        self.values.extend(other)

    def to_json(self) -> str:
        return json.dumps(self.values, separators=(",", ":"), ensure_ascii=False)

    def __len__(self) -> int:
        return len(self.values)

    def __iter__(self):
        return iter(self.values)


@dataclass(frozen=True)
class CacheKey:
    """Cache identity of a relayed request.

    ``authorization`` is the raw header value, or None when absent; an
    empty header is a different key from a missing one. ``path`` includes
    the query string and excludes the ``cached/{minutes}`` prefix.
    """

    authorization: Optional[bytes]
    path: str


@dataclass
class CacheEntry:
    """A stored result and the instant it was generated."""

    result: JsonArrayResult
    generated_at: float
    expires_at: float

    def age(self, now: float) -> float:
        return now - self.generated_at

    def is_expired(self, now: float) -> bool:
        return now > self.expires_at
