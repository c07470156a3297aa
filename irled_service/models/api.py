"""Pydantic schemas exchanged between the HTTP layer and the dispatcher."""
from __future__ import annotations

from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

TEXT_PLAIN = "text/plain"


class DispatchRequest(BaseModel):
    method: str
    path: str
    arguments: List[Tuple[str, str]] = Field(default_factory=list)

    def argument(self, name: str) -> Optional[str]:
        """Return the first value supplied for ``name``; query values precede form values."""

        for key, value in self.arguments:
            if key == name:
                return value
        return None


class DispatchReply(BaseModel):
    status_code: int = 200
    body: str
    media_type: str = TEXT_PLAIN


class ControllerInfo(BaseModel):
    link_state: str
    dispatcher_running: bool
    reconnect_pending: bool
    pending_requests: int
    reconnect_count: int


__all__ = [
    "ControllerInfo",
    "DispatchReply",
    "DispatchRequest",
    "TEXT_PLAIN",
]
