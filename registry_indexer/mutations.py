"""
Event -> Store mutation table.

Each typed event maps to exactly one handler; `MUTATIONS` covers every class in
`ALL_EVENT_TYPES`. Job-board handlers build `RowPatch` objects naming only the
columns the event owns, so applying them in any replay leaves unrelated
columns untouched.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Dict, Optional, Protocol

from registry_indexer.domain import events as ev
from registry_indexer.domain.events import DomainEvent
from registry_indexer.domain.models import (
    FeedbackEntry,
    ReviewerTrust,
    ValidationRequest,
    ValidationResponse,
)
from registry_indexer.domain.patches import (
    JobDisputePatch,
    JobMilestonePatch,
    JobPatch,
    JobProofPatch,
    JobValidationPatch,
    RowPatch,
)


class MutationWriter(Protocol):
    """The subset of `StoreWriter` the handlers use."""

    async def upsert_agent(
        self, agent_id: int, owner: str, agent_uri: str, agent_wallet: Optional[str], block_number: int
    ) -> None: ...

    async def update_agent_uri(self, agent_id: int, agent_uri: str, block_number: int) -> None: ...

    async def insert_feedback(self, entry: FeedbackEntry) -> None: ...

    async def revoke_feedback(self, feedback_hash: str, block_number: int) -> None: ...

    async def insert_validation_request(self, request: ValidationRequest) -> None: ...

    async def insert_validation_response(self, response: ValidationResponse) -> None: ...

    async def upsert_reviewer_trust(self, trust: ReviewerTrust) -> None: ...

    async def apply_patch(self, patch: RowPatch) -> None: ...

    async def set_watermark(self, block_number: int) -> None: ...


Handler = Callable[[MutationWriter, DomainEvent], Awaitable[None]]


# Identity


async def _registered(writer: MutationWriter, event: ev.Registered) -> None:
    await writer.upsert_agent(
        event.agent_id, event.owner, event.agent_uri, event.agent_wallet, event.position.block_number
    )


async def _agent_uri_updated(writer: MutationWriter, event: ev.AgentURIUpdated) -> None:
    await writer.update_agent_uri(event.agent_id, event.agent_uri, event.position.block_number)


# Reputation


async def _new_feedback(writer: MutationWriter, event: ev.NewFeedback) -> None:
    await writer.insert_feedback(
        FeedbackEntry(
            feedback_hash=event.feedback_hash,
            agent_id=event.agent_id,
            author=event.author,
            value=event.value,
            value_decimals=event.value_decimals,
            normalized_value=event.normalized_value,
            tag1=event.tag1,
            tag2=event.tag2,
            endpoint=event.endpoint,
            feedback_uri=event.feedback_uri,
            revoked=False,
            block_number=event.position.block_number,
        )
    )


async def _feedback_revoked(writer: MutationWriter, event: ev.FeedbackRevoked) -> None:
    await writer.revoke_feedback(event.feedback_hash, event.position.block_number)


# Validation


async def _request_appended(writer: MutationWriter, event: ev.RequestAppended) -> None:
    await writer.insert_validation_request(
        ValidationRequest(
            request_hash=event.request_hash,
            agent_id=event.agent_id,
            validator=event.validator,
            request_uri=event.request_uri,
            block_number=event.position.block_number,
        )
    )


async def _response_appended(writer: MutationWriter, event: ev.ResponseAppended) -> None:
    await writer.insert_validation_response(
        ValidationResponse(
            response_hash=event.response_hash,
            request_hash=event.request_hash,
            response_score=event.score,
            response_uri=event.response_uri,
            tag=event.tag,
            block_number=event.position.block_number,
        )
    )


# Job board


async def _job_posted(writer: MutationWriter, event: ev.JobPosted) -> None:
    await writer.apply_patch(
        JobPatch(
            job_id=event.job_id,
            owner=event.owner,
            job_uri=event.job_uri,
            job_hash=event.job_hash,
            payment_token=event.payment_token,
            budget_amount=str(event.budget_amount),
            deadline=event.deadline,
            pass_threshold=event.pass_threshold,
            dispute_window_seconds=event.dispute_window_seconds,
            milestone_count=event.milestone_count,
            status="open",
            posted_block=event.position.block_number,
        )
    )


async def _milestone_added(writer: MutationWriter, event: ev.MilestoneAdded) -> None:
    await writer.apply_patch(
        JobMilestonePatch(
            job_id=event.job_id,
            milestone_index=event.milestone_index,
            milestone_uri=event.milestone_uri,
            milestone_hash=event.milestone_hash,
            weight_bps=event.weight_bps,
        )
    )


async def _job_awarded(writer: MutationWriter, event: ev.JobAwarded) -> None:
    await writer.apply_patch(
        JobPatch(
            job_id=event.job_id,
            agent_id=event.agent_id,
            status="awarded",
            awarded_block=event.position.block_number,
        )
    )


async def _proof_submitted(writer: MutationWriter, event: ev.ProofSubmitted) -> None:
    await writer.apply_patch(
        JobProofPatch(
            job_id=event.job_id,
            milestone_index=event.milestone_index,
            proof_uri=event.proof_uri,
            proof_hash=event.proof_hash,
            submitted_block=event.position.block_number,
        )
    )


async def _validation_requested(writer: MutationWriter, event: ev.ValidationRequested) -> None:
    await writer.apply_patch(
        JobValidationPatch(
            job_id=event.job_id,
            milestone_index=event.milestone_index,
            validator=event.validator,
            request_hash=event.request_hash,
            request_uri=event.request_uri,
            request_block=event.position.block_number,
        )
    )


async def _job_finalized(writer: MutationWriter, event: ev.JobFinalized) -> None:
    block = event.position.block_number
    await writer.apply_patch(
        JobPatch(
            job_id=event.job_id,
            status="finalized",
            released_amount=str(event.released_amount),
            finalized_block=block,
        )
    )
    # Response score and URI are joined in from validation_responses on read.
    await writer.apply_patch(
        JobValidationPatch(
            job_id=event.job_id,
            milestone_index=event.milestone_index,
            request_hash=event.request_hash,
            response_block=block,
        )
    )
    await writer.apply_patch(
        JobMilestonePatch(job_id=event.job_id, milestone_index=event.milestone_index, paid=True)
    )


async def _dispute_opened(writer: MutationWriter, event: ev.DisputeOpened) -> None:
    await writer.apply_patch(
        JobDisputePatch(
            job_id=event.job_id,
            proposed_payout_bps=event.proposed_payout_bps,
            dispute_uri=event.dispute_uri,
            dispute_hash=event.dispute_hash,
            opened_block=event.position.block_number,
        )
    )
    await writer.apply_patch(JobPatch(job_id=event.job_id, status="disputed"))


async def _dispute_accepted(writer: MutationWriter, event: ev.DisputeAccepted) -> None:
    block = event.position.block_number
    await writer.apply_patch(
        JobDisputePatch(
            job_id=event.job_id,
            accepted=True,
            payout_amount=str(event.payout_amount),
            remainder_amount=str(event.remainder_amount),
            accepted_block=block,
        )
    )
    await writer.apply_patch(
        JobPatch(
            job_id=event.job_id,
            status="finalized",
            released_amount=str(event.payout_amount),
            finalized_block=block,
        )
    )


async def _remainder_reclaimed(writer: MutationWriter, event: ev.RemainderReclaimed) -> None:
    await writer.apply_patch(
        JobDisputePatch(
            job_id=event.job_id,
            remainder_amount=str(event.remainder_amount),
            reclaimed_block=event.position.block_number,
        )
    )
    await writer.apply_patch(JobPatch(job_id=event.job_id, status="reclaimed", released_amount="0"))


MUTATIONS: Dict[type, Handler] = {
    ev.Registered: _registered,
    ev.AgentURIUpdated: _agent_uri_updated,
    ev.NewFeedback: _new_feedback,
    ev.FeedbackRevoked: _feedback_revoked,
    ev.RequestAppended: _request_appended,
    ev.ResponseAppended: _response_appended,
    ev.JobPosted: _job_posted,
    ev.MilestoneAdded: _milestone_added,
    ev.JobAwarded: _job_awarded,
    ev.ProofSubmitted: _proof_submitted,
    ev.ValidationRequested: _validation_requested,
    ev.JobFinalized: _job_finalized,
    ev.DisputeOpened: _dispute_opened,
    ev.DisputeAccepted: _dispute_accepted,
    ev.RemainderReclaimed: _remainder_reclaimed,
}


async def apply_event(writer: MutationWriter, event: DomainEvent) -> None:
    """
    Apply one decoded event through `writer`.

    Raises
    ------
    TypeError
        If `event` is not one of the known event classes.
    """
    handler = MUTATIONS.get(type(event))
    if handler is None:
        raise TypeError(f"No mutation registered for {type(event).__name__}")
    await handler(writer, event)


__all__ = ["MUTATIONS", "MutationWriter", "apply_event"]
