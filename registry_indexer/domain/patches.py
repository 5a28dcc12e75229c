"""
Partial-update models for rows that several events write to.

A patch carries the row key plus only the columns its triggering event owns.
The Store writes exactly the fields that were explicitly passed to the
constructor (pydantic's `model_fields_set`), so a patch built for `JobAwarded`
can never overwrite `owner` or `job_uri`, not even with None.

    JobPatch(job_id=7, agent_id=3, status="awarded", awarded_block=120).changes()
    # {"job_id": 7, "agent_id": 3, "status": "awarded", "awarded_block": 120}
"""
from __future__ import annotations

from typing import Any, ClassVar, Dict, Optional, Tuple

from pydantic import BaseModel

from registry_indexer.domain.models import JobStatus


class RowPatch(BaseModel):
    """Base class: `table` and `key` name where the patch lands."""

    table: ClassVar[str]
    key: ClassVar[Tuple[str, ...]]

    model_config = {"frozen": True, "extra": "forbid"}

    def changes(self) -> Dict[str, Any]:
        """Key columns plus every explicitly set column, nothing else."""
        return self.model_dump(exclude_unset=True)

    def owned_columns(self) -> Tuple[str, ...]:
        """Non-key columns this patch writes, in declaration order."""
        return tuple(
            name for name in type(self).model_fields if name in self.model_fields_set and name not in self.key
        )


class JobPatch(RowPatch):
    table: ClassVar[str] = "jobs"
    key: ClassVar[Tuple[str, ...]] = ("job_id",)

    job_id: int
    owner: Optional[str] = None
    agent_id: Optional[int] = None
    job_uri: Optional[str] = None
    job_hash: Optional[str] = None
    payment_token: Optional[str] = None
    budget_amount: Optional[str] = None
    deadline: Optional[int] = None
    pass_threshold: Optional[int] = None
    dispute_window_seconds: Optional[int] = None
    milestone_count: Optional[int] = None
    status: Optional[JobStatus] = None
    posted_block: Optional[int] = None
    awarded_block: Optional[int] = None
    finalized_block: Optional[int] = None
    released_amount: Optional[str] = None


class JobMilestonePatch(RowPatch):
    table: ClassVar[str] = "job_milestones"
    key: ClassVar[Tuple[str, ...]] = ("job_id", "milestone_index")

    job_id: int
    milestone_index: int
    milestone_uri: Optional[str] = None
    milestone_hash: Optional[str] = None
    weight_bps: Optional[int] = None
    paid: Optional[bool] = None


class JobProofPatch(RowPatch):
    table: ClassVar[str] = "job_proofs"
    key: ClassVar[Tuple[str, ...]] = ("job_id", "milestone_index")

    job_id: int
    milestone_index: int
    proof_uri: Optional[str] = None
    proof_hash: Optional[str] = None
    submitted_block: Optional[int] = None


class JobValidationPatch(RowPatch):
    table: ClassVar[str] = "job_validations"
    key: ClassVar[Tuple[str, ...]] = ("job_id", "milestone_index")

    job_id: int
    milestone_index: int
    validator: Optional[str] = None
    request_hash: Optional[str] = None
    request_uri: Optional[str] = None
    request_block: Optional[int] = None
    response_score: Optional[int] = None
    response_hash: Optional[str] = None
    response_uri: Optional[str] = None
    tag: Optional[str] = None
    response_block: Optional[int] = None


class JobDisputePatch(RowPatch):
    table: ClassVar[str] = "job_disputes"
    key: ClassVar[Tuple[str, ...]] = ("job_id",)

    job_id: int
    proposed_payout_bps: Optional[int] = None
    dispute_uri: Optional[str] = None
    dispute_hash: Optional[str] = None
    accepted: Optional[bool] = None
    payout_amount: Optional[str] = None
    remainder_amount: Optional[str] = None
    opened_block: Optional[int] = None
    accepted_block: Optional[int] = None
    reclaimed_block: Optional[int] = None


__all__ = [
    "JobDisputePatch",
    "JobMilestonePatch",
    "JobPatch",
    "JobProofPatch",
    "JobValidationPatch",
    "RowPatch",
]
