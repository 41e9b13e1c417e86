from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class SessionView(BaseModel):
    id: str
    keys: list[str] = Field(default_factory=list)
    stamp: int


class ValueResponse(BaseModel):
    key: str
    found: bool
    value: Any = None


class SetValueRequest(BaseModel):
    value: Any = Field(description="Value to store under the key.")


class SweepResponse(BaseModel):
    removed: int


class DeleteResponse(BaseModel):
    success: bool
