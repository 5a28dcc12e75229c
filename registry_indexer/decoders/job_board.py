"""
Job board escrow decoder.

Covers the whole job lifecycle: post, milestones, award, proofs, validation
requests, finalization and the dispute branch.
"""

from __future__ import annotations

from typing import Any, Callable, Dict

from registry_indexer.decoders.abstract import AbstractContractDecoder
from registry_indexer.domain import events as ev
from registry_indexer.domain.events import ContractFamily, JobBoardEvent, LogPosition
from registry_indexer.errors import AbiDecodeError

_Builder = Callable[[Dict[str, Any], LogPosition], JobBoardEvent]

_BUILDERS: Dict[str, _Builder] = {
    "JobPosted": lambda v, p: ev.JobPosted(
        position=p,
        job_id=v["jobId"],
        owner=v["owner"],
        payment_token=v["paymentToken"],
        budget_amount=v["budgetAmount"],
        deadline=v["deadline"],
        pass_threshold=v["passThreshold"],
        dispute_window_seconds=v["disputeWindowSeconds"],
        job_uri=v["jobURI"],
        job_hash=v["jobHash"],
        milestone_count=v["milestoneCount"],
    ),
    "MilestoneAdded": lambda v, p: ev.MilestoneAdded(
        position=p,
        job_id=v["jobId"],
        milestone_index=v["milestoneIndex"],
        milestone_uri=v["milestoneURI"],
        milestone_hash=v["milestoneHash"],
        weight_bps=v["weightBps"],
    ),
    "JobAwarded": lambda v, p: ev.JobAwarded(position=p, job_id=v["jobId"], agent_id=v["agentId"]),
    "ProofSubmitted": lambda v, p: ev.ProofSubmitted(
        position=p,
        job_id=v["jobId"],
        milestone_index=v["milestoneIndex"],
        proof_uri=v["proofURI"],
        proof_hash=v["proofHash"],
    ),
    "ValidationRequested": lambda v, p: ev.ValidationRequested(
        position=p,
        job_id=v["jobId"],
        milestone_index=v["milestoneIndex"],
        validator=v["validator"],
        request_hash=v["requestHash"],
        request_uri=v["requestURI"],
    ),
    "JobFinalized": lambda v, p: ev.JobFinalized(
        position=p,
        job_id=v["jobId"],
        milestone_index=v["milestoneIndex"],
        payout_amount=v["payoutAmount"],
        released_amount=v["releasedAmount"],
        request_hash=v["requestHash"],
    ),
    "DisputeOpened": lambda v, p: ev.DisputeOpened(
        position=p,
        job_id=v["jobId"],
        proposed_payout_bps=v["proposedPayoutBps"],
        dispute_uri=v["disputeURI"],
        dispute_hash=v["disputeHash"],
    ),
    "DisputeAccepted": lambda v, p: ev.DisputeAccepted(
        position=p,
        job_id=v["jobId"],
        payout_amount=v["payoutAmount"],
        remainder_amount=v["remainderAmount"],
    ),
    "RemainderReclaimed": lambda v, p: ev.RemainderReclaimed(
        position=p, job_id=v["jobId"], remainder_amount=v["remainderAmount"]
    ),
}


class JobBoardDecoder(AbstractContractDecoder):
    family = ContractFamily.JOB_BOARD
    declarations = (
        "JobPosted(uint256 indexed jobId,address indexed owner,address indexed paymentToken,"
        "uint256 budgetAmount,uint256 deadline,uint16 passThreshold,uint64 disputeWindowSeconds,"
        "string jobURI,bytes32 jobHash,uint256 milestoneCount)",
        "MilestoneAdded(uint256 indexed jobId,uint256 indexed milestoneIndex,string milestoneURI,"
        "bytes32 milestoneHash,uint16 weightBps)",
        "JobAwarded(uint256 indexed jobId,uint256 indexed agentId)",
        "ProofSubmitted(uint256 indexed jobId,uint256 indexed milestoneIndex,string proofURI,bytes32 proofHash)",
        "ValidationRequested(uint256 indexed jobId,uint256 indexed milestoneIndex,address indexed validator,"
        "bytes32 requestHash,string requestURI)",
        "JobFinalized(uint256 indexed jobId,uint256 indexed milestoneIndex,uint256 payoutAmount,"
        "uint256 releasedAmount,bytes32 requestHash)",
        "DisputeOpened(uint256 indexed jobId,uint16 proposedPayoutBps,string disputeURI,bytes32 disputeHash)",
        "DisputeAccepted(uint256 indexed jobId,uint256 payoutAmount,uint256 remainderAmount)",
        "RemainderReclaimed(uint256 indexed jobId,uint256 remainderAmount)",
    )

    async def _build(self, name: str, values: Dict[str, Any], position: LogPosition) -> JobBoardEvent:
        builder = _BUILDERS.get(name)
        if builder is None:
            raise AbiDecodeError(f"No job board event named {name!r}")
        return builder(values, position)


__all__ = ["JobBoardDecoder"]
