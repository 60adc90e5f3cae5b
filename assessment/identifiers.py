"""Opaque 24-hex-character document identifiers."""
from __future__ import annotations

import re
import secrets
import time
from dataclasses import dataclass
from typing import Optional

from .errors import ValidationError

_IDENTIFIER_PATTERN = re.compile(r"[0-9a-fA-F]{24}")


@dataclass(frozen=True)
class Identifier:
    """Unique key for a stored document, validated on construction."""

    value: str

    def __post_init__(self) -> None:
        if not isinstance(self.value, str) or not _IDENTIFIER_PATTERN.fullmatch(self.value):
            raise ValidationError(f"Invalid identifier: {self.value!r}")
        object.__setattr__(self, "value", self.value.lower())

    @classmethod
    def generate(cls) -> "Identifier":
        """Return a new identifier: a 4-byte timestamp followed by 8 random bytes."""

        timestamp = int(time.time()) & 0xFFFFFFFF
        return cls(f"{timestamp:08x}{secrets.token_hex(8)}")

    def __str__(self) -> str:
        return self.value


def parse_identifier(value: object) -> Optional[Identifier]:
    """Return an :class:`Identifier` for ``value`` or ``None`` when it is malformed."""

    if isinstance(value, Identifier):
        return value
    if not isinstance(value, str) or not _IDENTIFIER_PATTERN.fullmatch(value):
        return None
    return Identifier(value)


__all__ = ["Identifier", "parse_identifier"]
