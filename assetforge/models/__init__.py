"""Assetforge data models — Pydantic v2, frozen (immutable)."""

from assetforge.models.config import BuildConfig, JsBundle, ProjectSpec
from assetforge.models.ipc import IpcRequest, IpcResponse
from assetforge.models.steps import VALID_TRANSITIONS, StepRecord, StepState
from assetforge.models.values import Value, ValueKind

__all__ = [
    "BuildConfig",
    "IpcRequest",
    "IpcResponse",
    "JsBundle",
    "ProjectSpec",
    "StepRecord",
    "StepState",
    "VALID_TRANSITIONS",
    "Value",
    "ValueKind",
]
