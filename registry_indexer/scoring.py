"""
Score Engine: weighted reputation computed on demand from stored signals.

    reviewer_weight(r) = 1 + allowlisted(r) + stake_weight(r) + identity_weight(r)
    feedback_score     = sum(normalized_value * reviewer_weight(author))   over non-revoked feedback
    validation_score   = sum(response_score * reviewer_weight(validator))  over answered requests
    reputation_score   = feedback_score + validation_score

A reviewer without a trust row weighs 1. Scores are never cached; every call
reloads the signals from the Store.
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Protocol, Sequence

from registry_indexer.domain.models import AgentScore, ReviewerTrust

DEFAULT_REVIEWER_WEIGHT = 1.0


@dataclass(frozen=True)
class FeedbackSignal:
    agent_id: int
    author: str
    normalized_value: float


@dataclass(frozen=True)
class ValidationSignal:
    """One answered validation request, carrying its latest response score."""

    agent_id: int
    validator: str
    response_score: int


@dataclass
class ScoreInputs:
    """Everything the engine needs, loaded in one read from the Store."""

    agent_ids: List[int] = field(default_factory=list)
    feedback: List[FeedbackSignal] = field(default_factory=list)
    validations: List[ValidationSignal] = field(default_factory=list)
    trust: Dict[str, ReviewerTrust] = field(default_factory=dict)


class ScoreSource(Protocol):
    async def load_score_inputs(self, agent_id: Optional[int] = None) -> ScoreInputs:
        ...


def reviewer_weight(reviewer: str, trust: Mapping[str, ReviewerTrust]) -> float:
    row = trust.get(reviewer.lower())
    if row is None:
        return DEFAULT_REVIEWER_WEIGHT
    return DEFAULT_REVIEWER_WEIGHT + (1.0 if row.allowlisted else 0.0) + row.stake_weight + row.identity_weight


def compute_scores(
    agent_ids: Iterable[int],
    feedback: Sequence[FeedbackSignal],
    validations: Sequence[ValidationSignal],
    trust: Mapping[str, ReviewerTrust],
) -> List[AgentScore]:
    """
    Score every agent in `agent_ids`, highest reputation first (ties by agent id).

    Signals for agents outside `agent_ids` are ignored; agents with no signals
    score 0.
    """
    feedback_totals: Dict[int, float] = defaultdict(float)
    for signal in feedback:
        feedback_totals[signal.agent_id] += signal.normalized_value * reviewer_weight(signal.author, trust)

    validation_totals: Dict[int, float] = defaultdict(float)
    for signal in validations:
        validation_totals[signal.agent_id] += signal.response_score * reviewer_weight(signal.validator, trust)

    scores = [
        AgentScore(
            agent_id=agent_id,
            feedback_score=feedback_totals.get(agent_id, 0.0),
            validation_score=validation_totals.get(agent_id, 0.0),
            reputation_score=feedback_totals.get(agent_id, 0.0) + validation_totals.get(agent_id, 0.0),
        )
        for agent_id in dict.fromkeys(agent_ids)
    ]
    scores.sort(key=lambda s: (-s.reputation_score, s.agent_id))
    return scores


class ScoreEngine:
    """Loads signals through a `ScoreSource` and scores them."""

    def __init__(self, source: ScoreSource) -> None:
        self._source = source

    async def all_scores(self) -> List[AgentScore]:
        inputs = await self._source.load_score_inputs()
        return compute_scores(inputs.agent_ids, inputs.feedback, inputs.validations, inputs.trust)

    async def score(self, agent_id: int) -> Optional[AgentScore]:
        """Score one agent, or None when the agent is not registered."""
        inputs = await self._source.load_score_inputs(agent_id)
        if agent_id not in inputs.agent_ids:
            return None
        scores = compute_scores([agent_id], inputs.feedback, inputs.validations, inputs.trust)
        return scores[0]


__all__ = [
    "DEFAULT_REVIEWER_WEIGHT",
    "FeedbackSignal",
    "ScoreEngine",
    "ScoreInputs",
    "ScoreSource",
    "ValidationSignal",
    "compute_scores",
    "reviewer_weight",
]
