from __future__ import annotations

import base64
import logging
import secrets
import string
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import Request, Response

from . import codec
from .errors import DecodeError, EncodeError
from .models import Session
from .store import SQLiteSessionStore

logger = logging.getLogger(__name__)

ID_ALPHABET = frozenset(string.ascii_letters + string.digits + "-_")


class SessionManager:
    """Turns the cookie a client presents into a concrete :class:`Session`.

    A candidate id of the configured length is always kept, even when its row
    is missing or stale, so the cookie value stays stable across expiry. Such
    an id is not checked for having been issued by this store; any string of
    the right shape starts a new session under that string.
    """

    def __init__(self, store: SQLiteSessionStore) -> None:
        self._store = store
        self._config = store.config

    @property
    def store(self) -> SQLiteSessionStore:
        return self._store

    def generate_id(self) -> str:
        length = self._config.id_length
        encoded = base64.urlsafe_b64encode(secrets.token_bytes(length * 2)).decode("ascii")
        return encoded[:length]

    async def find_or_create(self, candidate_id: Optional[str]) -> Session:
        if not candidate_id or len(candidate_id) != self._config.id_length:
            session = self._new_session(self.generate_id())
            await self.save(session)
            logger.debug("Issued new session %s…", session.id[:8])
            return session

        row = await self._store.load_live(candidate_id)
        if row is None:
            session = self._new_session(candidate_id)
            await self.save(session)
            logger.debug("No live row for session %s…, recreated it", candidate_id[:8])
            return session

        try:
            data = codec.decode(row.data)
        except DecodeError as exc:
            logger.warning("Discarding unreadable payload of session %s…: %s", candidate_id[:8], exc)
            data = {}
        return Session(id=row.id, data=data, stamp=row.stamp, saver=self.save)

    async def resolve(self, request: Request, response: Response) -> Session:
        """Find or create the session named by the request cookie and refresh that cookie."""
        session = await self.find_or_create(request.cookies.get(self._config.cookie_name))
        response.set_cookie(**self.cookie_params(session.id))
        return session

    async def save(self, session: Session) -> None:
        try:
            blob = codec.encode(session.data)
        except EncodeError:
            logger.error("Session %s… holds a value that cannot be stored", session.id[:8])
            raise
        session.stamp = self._store.now()
        await self._store.upsert(session.id, blob, session.stamp)

    async def destroy(self, session_id: str, response: Optional[Response] = None) -> bool:
        """Drop the session row and, when a response is given, expire the cookie."""
        removed = await self._store.delete(session_id)
        if response is not None:
            response.delete_cookie(
                self._config.cookie_name,
                path=self._config.path,
                domain=self._config.domain,
                secure=self._config.secure,
                httponly=self._config.http_only,
            )
        return removed

    async def sweep_expired(self) -> int:
        return await self._store.sweep_expired()

    def cookie_params(self, session_id: str) -> dict[str, Any]:
        ttl = self._config.ttl_seconds
        expires = datetime.fromtimestamp(self._store.now() + ttl, tz=timezone.utc)
        return {
            "key": self._config.cookie_name,
            "value": session_id,
            "max_age": ttl,
            "expires": expires,
            "path": self._config.path,
            "domain": self._config.domain,
            "secure": self._config.secure,
            "httponly": self._config.http_only,
        }

    def _new_session(self, session_id: str) -> Session:
        return Session(id=session_id, stamp=self._store.now(), saver=self.save)
