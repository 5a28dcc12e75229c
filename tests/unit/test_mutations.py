from __future__ import annotations

from collections import defaultdict

import pytest

from registry_fakes import InMemoryWriter, addr, h32
from registry_indexer.domain import events as ev
from registry_indexer.domain.events import ALL_EVENT_TYPES, LogPosition
from registry_indexer.mutations import MUTATIONS, apply_event

OWNER = addr(1)
VALIDATOR = addr(2)


def at(block: int, index: int = 0) -> LogPosition:
    return LogPosition(block_number=block, log_index=index)


def _tables():
    return defaultdict(dict)


def _job_posted(block: int = 10) -> ev.JobPosted:
    return ev.JobPosted(
        position=at(block),
        job_id=1,
        owner=OWNER,
        payment_token=addr(9),
        budget_amount=5 * 10**18,
        deadline=2_000_000_000,
        pass_threshold=60,
        dispute_window_seconds=3600,
        job_uri="ipfs://job-1",
        job_hash=h32(1),
        milestone_count=2,
    )


def test_every_event_type_has_a_mutation():
    assert set(MUTATIONS) == set(ALL_EVENT_TYPES)


@pytest.mark.asyncio
async def test_unknown_event_type_is_rejected():
    with pytest.raises(TypeError):
        await apply_event(InMemoryWriter(_tables()), object())


@pytest.mark.asyncio
async def test_job_posted_then_awarded_merges_into_one_row():
    writer = InMemoryWriter(_tables())
    await apply_event(writer, _job_posted())
    await apply_event(writer, ev.JobAwarded(position=at(12), job_id=1, agent_id=7))

    jobs = writer.tables["jobs"]
    assert list(jobs) == [(1,)]
    row = jobs[(1,)]
    assert row["owner"] == OWNER
    assert row["job_uri"] == "ipfs://job-1"
    assert row["budget_amount"] == str(5 * 10**18)
    assert row["agent_id"] == 7
    assert row["status"] == "awarded"
    assert row["posted_block"] == 10
    assert row["awarded_block"] == 12


@pytest.mark.asyncio
async def test_job_finalized_touches_job_validation_and_milestone():
    writer = InMemoryWriter(_tables())
    await apply_event(writer, _job_posted())
    await apply_event(
        writer,
        ev.MilestoneAdded(position=at(11), job_id=1, milestone_index=0, milestone_uri="m0", milestone_hash=h32(3),
                          weight_bps=5000),
    )
    await apply_event(
        writer,
        ev.ValidationRequested(position=at(13), job_id=1, milestone_index=0, validator=VALIDATOR,
                               request_hash=h32(4), request_uri="ipfs://req"),
    )
    await apply_event(
        writer,
        ev.JobFinalized(position=at(20), job_id=1, milestone_index=0, payout_amount=3, released_amount=3,
                        request_hash=h32(4)),
    )

    job = writer.tables["jobs"][(1,)]
    assert job["status"] == "finalized"
    assert job["released_amount"] == "3"
    assert job["finalized_block"] == 20
    assert job["owner"] == OWNER

    validation = writer.tables["job_validations"][(1, 0)]
    assert validation["validator"] == VALIDATOR
    assert validation["request_uri"] == "ipfs://req"
    assert validation["request_block"] == 13
    assert validation["response_block"] == 20

    milestone = writer.tables["job_milestones"][(1, 0)]
    assert milestone["paid"] is True
    assert milestone["weight_bps"] == 5000


@pytest.mark.asyncio
async def test_dispute_lifecycle():
    writer = InMemoryWriter(_tables())
    await apply_event(writer, _job_posted())
    await apply_event(
        writer,
        ev.DisputeOpened(position=at(30), job_id=1, proposed_payout_bps=4000, dispute_uri="d", dispute_hash=h32(8)),
    )
    assert writer.tables["jobs"][(1,)]["status"] == "disputed"

    await apply_event(writer, ev.DisputeAccepted(position=at(31), job_id=1, payout_amount=40, remainder_amount=60))
    dispute = writer.tables["job_disputes"][(1,)]
    assert dispute["accepted"] is True
    assert dispute["proposed_payout_bps"] == 4000
    assert (dispute["payout_amount"], dispute["remainder_amount"]) == ("40", "60")
    assert writer.tables["jobs"][(1,)]["status"] == "finalized"
    assert writer.tables["jobs"][(1,)]["released_amount"] == "40"

    await apply_event(writer, ev.RemainderReclaimed(position=at(40), job_id=1, remainder_amount=60))
    dispute = writer.tables["job_disputes"][(1,)]
    assert dispute["reclaimed_block"] == 40
    assert dispute["accepted"] is True
    job = writer.tables["jobs"][(1,)]
    assert job["status"] == "reclaimed"
    assert job["released_amount"] == "0"


@pytest.mark.asyncio
async def test_feedback_revocation_survives_replay():
    writer = InMemoryWriter(_tables())
    feedback = ev.NewFeedback(
        position=at(5), agent_id=1, author=OWNER, value=80, value_decimals=0, feedback_hash=h32(6),
        tag1="", tag2="", endpoint="", feedback_uri="",
    )
    await apply_event(writer, feedback)
    await apply_event(writer, ev.FeedbackRevoked(position=at(6), feedback_hash=h32(6), author=OWNER))
    await apply_event(writer, feedback)

    row = writer.tables["feedback"][h32(6)]
    assert row["revoked"] is True
    assert row["block_number"] == 6
    assert row["normalized_value"] == 80.0


@pytest.mark.asyncio
async def test_agent_registration_and_uri_update():
    writer = InMemoryWriter(_tables())
    await apply_event(
        writer, ev.Registered(position=at(3), agent_id=1, owner=OWNER, agent_uri="a", agent_wallet=None)
    )
    await apply_event(writer, ev.AgentURIUpdated(position=at(9), agent_id=1, agent_uri="b"))

    agent = writer.tables["agents"][1]
    assert agent["agent_uri"] == "b"
    assert agent["created_block"] == 3
    assert agent["updated_block"] == 9
