"""Result objects returned by bulk actions and archive exports."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Literal

BulkAction = Literal["verify", "unverify", "delete"]
BulkStatus = Literal["completed", "empty", "busy"]


@dataclass
class BulkActionResult:
    """Aggregated outcome of a verify/unverify/delete run.

    Attributes:
        action: The action that was requested.
        success_count: Ids the source accepted.
        failure_count: Ids that failed individually.
        message: Human-readable summary for the operator.
        status: "completed" when the action ran, "empty" when no ids were given,
            "busy" when the same action was already in flight.
    """

    action: BulkAction
    success_count: int = 0
    failure_count: int = 0
    message: str = ""
    status: BulkStatus = "completed"

    @property
    def success(self) -> bool:
        return self.success_count > 0

    def to_dict(self) -> dict:
        return {
            "action": self.action,
            "success": self.success,
            "success_count": self.success_count,
            "failure_count": self.failure_count,
            "message": self.message,
            "status": self.status,
        }


@dataclass
class ArchiveResult:
    """A finished ZIP archive held in memory."""

    filename: str
    content: bytes
    entries: List[str] = field(default_factory=list)
    failed_ids: List[int] = field(default_factory=list)
    unverified_count: int = 0
