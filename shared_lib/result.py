"""
shared_lib.result — Outcome of a best-effort external call.

Store and backend calls that must never abort a pipeline run return a
CallResult instead of raising, so each call site decides whether to log,
retry or ignore a failure.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional


class CallStatus(str, Enum):
    """How an external call ended."""

    SUCCESS = "success"
    NOT_FOUND = "not_found"
    TRANSIENT_FAILURE = "transient_failure"
    PERMANENT_FAILURE = "permanent_failure"


@dataclass(frozen=True)
class CallResult:
    """
    Result of a single external call.

    Attributes:
        status: How the call ended
        value:  Response value on success (None for write calls)
        error:  Human-readable failure detail, None on success
    """

    status: CallStatus
    value: Any = None
    error: Optional[str] = None

    @classmethod
    def success(cls, value: Any = None) -> "CallResult":
        return cls(CallStatus.SUCCESS, value=value)

    @classmethod
    def not_found(cls, error: Optional[str] = None) -> "CallResult":
        return cls(CallStatus.NOT_FOUND, error=error)

    @classmethod
    def transient(cls, error: str) -> "CallResult":
        return cls(CallStatus.TRANSIENT_FAILURE, error=error)

    @classmethod
    def permanent(cls, error: str) -> "CallResult":
        return cls(CallStatus.PERMANENT_FAILURE, error=error)

    @property
    def ok(self) -> bool:
        return self.status is CallStatus.SUCCESS

    @property
    def failed(self) -> bool:
        """True for transient and permanent failures (not for not-found)."""
        return self.status in (CallStatus.TRANSIENT_FAILURE, CallStatus.PERMANENT_FAILURE)
