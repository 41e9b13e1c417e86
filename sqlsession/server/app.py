# Copyright (c) 2025 Bytedance Ltd. and/or its affiliates
# SPDX-License-Identifier: MIT

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from sqlsession.server.session.dependencies import initialise_session_manager, set_session_manager
from sqlsession.server.session.router import router as session_router
from sqlsession.server.session.sweeper import ExpirySweeper

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    manager = initialise_session_manager()
    await manager.store.init()
    set_session_manager(manager)

    sweeper = ExpirySweeper(manager, manager.store.config.sweep_interval_seconds)
    app.state.session_sweeper = sweeper
    await sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()
        await manager.store.close()


app = FastAPI(
    title="sqlsession",
    description="Cookie-keyed server-side sessions",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(session_router)


@app.get("/healthz")
async def health() -> dict:
    sweeper = getattr(app.state, "session_sweeper", None)
    return {"status": "ok", "sweeper": sweeper.get_status() if sweeper else None}
