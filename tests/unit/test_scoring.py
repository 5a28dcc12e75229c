from __future__ import annotations

import pytest

from registry_fakes import StaticReadStore, addr, h32
from registry_indexer.domain.models import Agent, FeedbackEntry, ReviewerTrust, ValidationRecord
from registry_indexer.scoring import (
    FeedbackSignal,
    ScoreEngine,
    ValidationSignal,
    compute_scores,
    reviewer_weight,
)

ALICE = addr(0xA)
BOB = addr(0xB)
VALIDATOR = addr(0xC)


def _feedback(agent_id: int, n: int, author: str, value: int, revoked: bool = False) -> FeedbackEntry:
    return FeedbackEntry(
        feedback_hash=h32(n),
        agent_id=agent_id,
        author=author,
        value=value,
        value_decimals=0,
        normalized_value=float(value),
        revoked=revoked,
        block_number=n,
    )


def _validation(agent_id: int, n: int, score=None) -> ValidationRecord:
    return ValidationRecord(
        request_hash=h32(n),
        agent_id=agent_id,
        validator=VALIDATOR,
        request_uri="",
        request_block=n,
        response_score=score,
    )


def test_unknown_reviewer_weighs_one():
    assert reviewer_weight(ALICE, {}) == 1.0


def test_trust_components_add_up():
    trust = {ALICE: ReviewerTrust(reviewer=ALICE, allowlisted=True, stake_weight=2.0, identity_weight=0.0)}
    assert reviewer_weight(ALICE, trust) == 4.0
    assert reviewer_weight(ALICE.upper().replace("0X", "0x"), trust) == 4.0


def test_feedback_weighted_by_author_trust():
    trust = {ALICE: ReviewerTrust(reviewer=ALICE, allowlisted=True, stake_weight=2.0)}
    [score] = compute_scores([1], [FeedbackSignal(1, ALICE, 10.0)], [], trust)
    assert score.feedback_score == 40.0
    assert score.reputation_score == 40.0


def test_scores_sorted_by_reputation_then_id():
    scores = compute_scores(
        [3, 1, 2],
        [FeedbackSignal(1, ALICE, 5.0), FeedbackSignal(2, BOB, 5.0)],
        [ValidationSignal(3, VALIDATOR, 90)],
        {},
    )
    assert [s.agent_id for s in scores] == [3, 1, 2]
    assert scores[0].validation_score == 90.0
    assert scores[1].reputation_score == scores[2].reputation_score == 5.0


def test_signals_for_unlisted_agents_are_ignored():
    scores = compute_scores([1], [FeedbackSignal(2, ALICE, 50.0)], [], {})
    assert [(s.agent_id, s.reputation_score) for s in scores] == [(1, 0.0)]


@pytest.mark.asyncio
async def test_engine_combines_feedback_and_validations():
    store = StaticReadStore(
        agents=[Agent(agent_id=1, owner=ALICE)],
        feedback=[_feedback(1, 1, BOB, 30), _feedback(1, 2, BOB, 50), _feedback(1, 3, BOB, 99, revoked=True)],
        validations=[_validation(1, 4, score=0), _validation(1, 5)],
    )
    score = await ScoreEngine(store).score(1)

    assert score.feedback_score == 80.0
    assert score.validation_score == 0.0
    assert score.reputation_score == 80.0


@pytest.mark.asyncio
async def test_engine_reloads_on_every_call():
    store = StaticReadStore(agents=[Agent(agent_id=1, owner=ALICE)])
    engine = ScoreEngine(store)

    assert (await engine.score(1)).reputation_score == 0.0
    store.feedback.append(_feedback(1, 1, BOB, 7))
    assert (await engine.score(1)).reputation_score == 7.0
    assert store.score_loads == [1, 1]


@pytest.mark.asyncio
async def test_engine_returns_none_for_unknown_agent():
    engine = ScoreEngine(StaticReadStore(agents=[Agent(agent_id=1, owner=ALICE)]))
    assert await engine.score(99) is None
    assert [s.agent_id for s in await engine.all_scores()] == [1]
