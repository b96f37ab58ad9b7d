from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional


@dataclass
class ApplyError(Exception):
    """Canonical error type for domain apply and dispatch failures."""

    code: str
    reason: str
    details: Any | None = None

    def __str__(self) -> str:  # pragma: no cover
        if self.details is None:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"

    def to_json(self) -> dict:
        return {"code": self.code, "reason": self.reason, "details": self.details}


# ---------------------------------------------------------------------------
# Typed rejections. Each one pins `code`; callers choose the `reason`.
# ---------------------------------------------------------------------------


class _CodedError(ApplyError):
    CODE = "apply_error"

    def __init__(self, reason: str, details: Optional[dict] = None) -> None:
        super().__init__(self.CODE, reason, details)


class ZeroAddress(_CodedError):
    CODE = "zero_address"


class InvalidParameter(_CodedError):
    CODE = "invalid_parameter"


class InvalidAmount(InvalidParameter):
    pass


class InvalidMaturity(InvalidParameter):
    pass


class InvalidFee(InvalidParameter):
    pass


class AlreadyWithdrawn(_CodedError):
    CODE = "already_withdrawn"


class NotOwner(_CodedError):
    CODE = "not_owner"


class NotMatured(_CodedError):
    CODE = "not_matured"


class NotFound(_CodedError):
    CODE = "not_found"


class InsufficientBalance(_CodedError):
    CODE = "insufficient_balance"


class InsufficientAllowance(_CodedError):
    CODE = "insufficient_allowance"


class WaitingTimeNotCompleted(_CodedError):
    CODE = "waiting_time_not_completed"


class NoFeesToDistribute(_CodedError):
    CODE = "no_fees_to_distribute"


class Unauthorized(_CodedError):
    CODE = "unauthorized"


class Reentrancy(_CodedError):
    CODE = "reentrancy"


class CollaboratorFailed(_CodedError):
    CODE = "collaborator_failed"


__all__ = [
    "ApplyError",
    "ZeroAddress",
    "InvalidParameter",
    "InvalidAmount",
    "InvalidMaturity",
    "InvalidFee",
    "AlreadyWithdrawn",
    "NotOwner",
    "NotMatured",
    "NotFound",
    "InsufficientBalance",
    "InsufficientAllowance",
    "WaitingTimeNotCompleted",
    "NoFeesToDistribute",
    "Unauthorized",
    "Reentrancy",
    "CollaboratorFailed",
]
