# src/worktimer/core/errors.py

"""
Result objects returned by every network-calling operation.

Backends never raise for expected failures (network down, rejected transition,
bad input). They return ApiResult.fail(...) and the caller decides how to surface it.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    NETWORK_FAILURE = "network_failure"  # request never completed
    REJECTED_TRANSITION = "rejected_transition"  # incompatible current state
    VALIDATION_FAILURE = "validation_failure"  # malformed input, no request sent


@dataclass(slots=True, frozen=True)
class ApiResult:
    """
    Discriminated result: {success: True, data} | {success: False, message}.

    `kind` is only meaningful on failure; `status` carries the HTTP status when
    the backend is HTTP-based.
    """

    success: bool
    data: Any = None
    message: str | None = None
    kind: ErrorKind | None = None
    status: int | None = None

    @classmethod
    def ok(cls, data: Any = None, *, status: int | None = None) -> ApiResult:
        return cls(success=True, data=data, status=status)

    @classmethod
    def fail(
        cls,
        message: str,
        kind: ErrorKind = ErrorKind.NETWORK_FAILURE,
        *,
        status: int | None = None,
    ) -> ApiResult:
        return cls(success=False, message=message, kind=kind, status=status)

    def __bool__(self) -> bool:
        return self.success
