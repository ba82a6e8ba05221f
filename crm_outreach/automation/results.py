"""Per-lead outcomes and the batch summary shown after an automation submit."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class OperationResult:
    """Result of a mutating call: ok, or an error with a message."""
    ok: bool
    error: Optional[str] = None

    @classmethod
    def success(cls) -> "OperationResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, message: str) -> "OperationResult":
        return cls(ok=False, error=message or "Unknown error")


@dataclass(frozen=True)
class PersistOutcome:
    lead_id: str
    result: OperationResult

    @property
    def ok(self) -> bool:
        return self.result.ok


class DispatchStatus(str, Enum):
    DELIVERED = "delivered"
    REJECTED = "rejected"
    NETWORK_ERROR = "network_error"


@dataclass(frozen=True)
class DispatchOutcome:
    lead_id: str
    status: DispatchStatus
    status_code: Optional[int] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status is DispatchStatus.DELIVERED


@dataclass
class BatchSummary:
    """Combined view of one submit: counts plus the failing lead ids."""
    attempted: int = 0
    succeeded: list[str] = field(default_factory=list)
    persistence_failures: list[PersistOutcome] = field(default_factory=list)
    rejected: list[DispatchOutcome] = field(default_factory=list)
    network_errors: list[DispatchOutcome] = field(default_factory=list)

    @property
    def dispatch_failures(self) -> int:
        return len(self.rejected) + len(self.network_errors)

    @property
    def full_success(self) -> bool:
        return self.attempted > 0 and len(self.succeeded) == self.attempted

    @property
    def level(self) -> str:
        return "success" if self.full_success else "warning"

    @property
    def message(self) -> str:
        if self.full_success:
            noun = "lead" if self.attempted == 1 else "leads"
            return f"{self.attempted} {noun} added to automation and sent for processing."

        parts = [f"{len(self.succeeded)} of {self.attempted} leads automated"]
        if self.persistence_failures:
            parts.append(f"{len(self.persistence_failures)} failed to save")
        if self.rejected:
            parts.append(f"{len(self.rejected)} webhook(s) rejected")
        if self.network_errors:
            parts.append(f"{len(self.network_errors)} webhook(s) unreachable")
        return "; ".join(parts) + "."

    def as_dict(self) -> dict:
        return {
            "attempted": self.attempted,
            "succeeded": len(self.succeeded),
            "dispatch_failures": self.dispatch_failures,
            "persistence_failures": len(self.persistence_failures),
            "rejected": [o.lead_id for o in self.rejected],
            "network_errors": [o.lead_id for o in self.network_errors],
        }


def aggregate(
    persist_outcomes: list[PersistOutcome],
    dispatch_outcomes: list[DispatchOutcome],
) -> BatchSummary:
    """Fold persistence and dispatch outcomes into one summary.

    A lead whose persistence failed counts as a persistence failure only, even
    if its webhook was delivered. Dispatch failures count leads that saved but
    whose webhook did not land.
    """
    dispatch_by_id = {o.lead_id: o for o in dispatch_outcomes}
    summary = BatchSummary(attempted=len(persist_outcomes))

    for persisted in persist_outcomes:
        if not persisted.ok:
            summary.persistence_failures.append(persisted)
            continue

        dispatched = dispatch_by_id.get(persisted.lead_id)
        if dispatched is None:
            summary.network_errors.append(
                DispatchOutcome(persisted.lead_id, DispatchStatus.NETWORK_ERROR, error="not dispatched")
            )
        elif dispatched.status is DispatchStatus.REJECTED:
            summary.rejected.append(dispatched)
        elif dispatched.status is DispatchStatus.NETWORK_ERROR:
            summary.network_errors.append(dispatched)
        else:
            summary.succeeded.append(persisted.lead_id)

    return summary
