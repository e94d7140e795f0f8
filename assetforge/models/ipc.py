"""IPC request/response envelopes.

Wire format: one JSON object per line.  Requests are
``{"type": ..., "params": {...}}``; responses carry exactly one of
``result`` or ``error``.
"""

from __future__ import annotations

import json
from typing import Any

from pydantic import BaseModel, ConfigDict

LIST_FUNCTIONS = "list-functions"
CALL = "call"


class IpcRequest(BaseModel):
    """Request envelope sent by a child process."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    type: str
    params: dict[str, Any] | None = None


class IpcResponse(BaseModel):
    """Response envelope returned to the child process."""

    model_config = ConfigDict(frozen=True)

    result: Any = None
    error: str | None = None

    @classmethod
    def ok(cls, result: Any) -> IpcResponse:
        return cls(result=result)

    @classmethod
    def fail(cls, message: str) -> IpcResponse:
        return cls(error=message)

    @property
    def is_error(self) -> bool:
        return self.error is not None

    def to_line(self) -> bytes:
        """Encode as a single newline-terminated JSON line."""
        body = {"error": self.error} if self.is_error else {"result": self.result}
        return json.dumps(body).encode("utf-8") + b"\n"
