from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from .dependencies import get_session, get_session_manager
from .errors import EncodeError
from .manager import SessionManager
from .models import Session
from .schemas import DeleteResponse, SessionView, SetValueRequest, SweepResponse, ValueResponse

router = APIRouter(prefix="/api/session", tags=["session"])


@router.get("", response_model=SessionView)
async def read_session(session: Session = Depends(get_session)) -> SessionView:
    return _to_view(session)


@router.get("/values/{key}", response_model=ValueResponse)
async def read_value(key: str, session: Session = Depends(get_session)) -> ValueResponse:
    value, found = session.get(key)
    return ValueResponse(key=key, found=found, value=value)


@router.put("/values/{key}", response_model=SessionView)
async def write_value(
    key: str,
    payload: SetValueRequest,
    session: Session = Depends(get_session),
) -> SessionView:
    try:
        await session.set(key, payload.value)
    except EncodeError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    return _to_view(session)


@router.delete("", response_model=DeleteResponse)
async def delete_session(
    request: Request,
    response: Response,
    manager: SessionManager = Depends(get_session_manager),
) -> DeleteResponse:
    session_id = request.cookies.get(manager.store.config.cookie_name)
    if not session_id:
        return DeleteResponse(success=False)
    removed = await manager.destroy(session_id, response)
    return DeleteResponse(success=removed)


@router.post("/sweep", response_model=SweepResponse)
async def sweep_sessions(manager: SessionManager = Depends(get_session_manager)) -> SweepResponse:
    return SweepResponse(removed=await manager.sweep_expired())


def _to_view(session: Session) -> SessionView:
    return SessionView(id=session.id, keys=sorted(session.data), stamp=session.stamp)
