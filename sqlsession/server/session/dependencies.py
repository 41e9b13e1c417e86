from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request, Response

from sqlsession.config.loader import get_str_env

from .manager import SessionManager
from .models import Session, SessionConfig
from .store import SQLiteSessionStore

logger = logging.getLogger(__name__)

_SESSION_MANAGER: Optional[SessionManager] = None


def initialise_session_manager() -> SessionManager:
    """Create the session manager instance using configuration."""
    global _SESSION_MANAGER
    if _SESSION_MANAGER is not None:
        return _SESSION_MANAGER

    config = SessionConfig.from_env()
    db_path = get_str_env("SESSION_DB_PATH", "sessions.db")
    store = SQLiteSessionStore(db_path, config)
    _SESSION_MANAGER = SessionManager(store)
    logger.info("Initialised session store with DB path %s", store.db_path)
    return _SESSION_MANAGER


def set_session_manager(manager: Optional[SessionManager]) -> None:
    global _SESSION_MANAGER
    _SESSION_MANAGER = manager


def get_session_manager(_: SessionManager = Depends(initialise_session_manager)) -> SessionManager:
    if _SESSION_MANAGER is None:
        raise RuntimeError("Session manager has not been initialised")
    return _SESSION_MANAGER


async def get_session(
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> Session:
    return await manager.resolve(request, response)
