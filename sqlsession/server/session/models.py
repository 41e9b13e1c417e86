from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Optional, Union

from sqlsession.config.loader import get_bool_env, get_int_env, get_str_env

from .errors import ConfigError

_TABLE_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

Scalar = Union[bool, int, float, str]
SessionValue = Union[Scalar, list, tuple, dict]


class ValueKind(str, Enum):
    """Closed set of value kinds a session payload may hold.

    The enum value doubles as the tag written by the codec.
    """

    INT = "i"
    FLOAT = "f"
    STRING = "s"
    BOOL = "b"
    LIST = "l"
    TUPLE = "t"
    MAPPING = "m"


SCALAR_KINDS = frozenset({ValueKind.INT, ValueKind.FLOAT, ValueKind.STRING, ValueKind.BOOL})


@dataclass(slots=True)
class SessionConfig:
    cookie_name: str = "session"
    id_length: int = 254
    ttl_seconds: int = 60
    secure: bool = False
    http_only: bool = False
    domain: Optional[str] = None
    path: str = "/"
    table: str = "session"
    sweep_interval_seconds: int = 60

    def __post_init__(self) -> None:
        if not self.cookie_name:
            raise ConfigError("cookie_name must not be empty")
        if self.id_length < 1:
            raise ConfigError(f"id_length must be positive, got {self.id_length}")
        if self.ttl_seconds < 0:
            raise ConfigError(f"ttl_seconds must not be negative, got {self.ttl_seconds}")
        if self.sweep_interval_seconds < 0:
            raise ConfigError(
                f"sweep_interval_seconds must not be negative, got {self.sweep_interval_seconds}"
            )
        if not _TABLE_NAME.match(self.table):
            raise ConfigError(f"table name {self.table!r} is not a plain SQL identifier")

    @classmethod
    def from_env(cls) -> "SessionConfig":
        """Build a configuration from ``SESSION_*`` environment variables."""
        defaults = cls()
        return cls(
            cookie_name=get_str_env("SESSION_COOKIE_NAME", defaults.cookie_name) or defaults.cookie_name,
            id_length=get_int_env("SESSION_ID_LENGTH", defaults.id_length),
            ttl_seconds=get_int_env("SESSION_TTL_SECONDS", defaults.ttl_seconds),
            secure=get_bool_env("SESSION_COOKIE_SECURE", defaults.secure),
            http_only=get_bool_env("SESSION_COOKIE_HTTPONLY", defaults.http_only),
            domain=get_str_env("SESSION_COOKIE_DOMAIN", None) or None,
            path=get_str_env("SESSION_COOKIE_PATH", defaults.path) or defaults.path,
            table=get_str_env("SESSION_TABLE", defaults.table) or defaults.table,
            sweep_interval_seconds=get_int_env(
                "SESSION_SWEEP_INTERVAL", defaults.sweep_interval_seconds
            ),
        )


@dataclass(slots=True)
class SessionRow:
    id: str
    data: bytes
    stamp: int


@dataclass(slots=True)
class Session:
    """In-memory view of one session row.

    ``set`` writes the whole payload back through the owning manager, so every
    mutation refreshes ``stamp``.
    """

    id: str
    data: dict[str, Any] = field(default_factory=dict)
    stamp: int = 0
    saver: Optional[Callable[["Session"], Awaitable[None]]] = field(
        default=None, repr=False, compare=False
    )

    def get(self, key: str) -> tuple[Any, bool]:
        if key in self.data:
            return self.data[key], True
        return None, False

    def has(self, key: str) -> bool:
        _, found = self.get(key)
        return found

    async def set(self, key: str, value: SessionValue) -> "Session":
        self.data[key] = value
        if self.saver is not None:
            await self.saver(self)
        return self
