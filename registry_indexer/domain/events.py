"""
Typed domain events decoded from registry contract logs.

Every contract family has a closed set of events. The decoders produce these
values once, and the sync engine dispatches on their type, so a new event
needs a new class here, a decoder entry and a mutation handler.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional, Tuple, Union


class ContractFamily(str, enum.Enum):
    IDENTITY = "identity"
    REPUTATION = "reputation"
    VALIDATION = "validation"
    JOB_BOARD = "job_board"


@dataclass(frozen=True)
class LogPosition:
    """Where an event was emitted; used for ordering and block bookkeeping."""

    block_number: int
    log_index: int = 0
    transaction_hash: Optional[str] = None


# Identity registry


@dataclass(frozen=True)
class Registered:
    position: LogPosition
    agent_id: int
    owner: str
    agent_uri: str
    agent_wallet: Optional[str]


@dataclass(frozen=True)
class AgentURIUpdated:
    position: LogPosition
    agent_id: int
    agent_uri: str


# Reputation registry


@dataclass(frozen=True)
class NewFeedback:
    position: LogPosition
    agent_id: int
    author: str
    value: int
    value_decimals: int
    feedback_hash: str
    tag1: str
    tag2: str
    endpoint: str
    feedback_uri: str

    @property
    def normalized_value(self) -> float:
        return self.value / (10 ** self.value_decimals)


@dataclass(frozen=True)
class FeedbackRevoked:
    position: LogPosition
    feedback_hash: str
    author: str


# Validation registry


@dataclass(frozen=True)
class RequestAppended:
    position: LogPosition
    request_hash: str
    agent_id: int
    validator: str
    request_uri: str


@dataclass(frozen=True)
class ResponseAppended:
    position: LogPosition
    request_hash: str
    response_hash: str
    score: int
    response_uri: str
    tag: str


# Job board escrow


@dataclass(frozen=True)
class JobPosted:
    position: LogPosition
    job_id: int
    owner: str
    payment_token: str
    budget_amount: int
    deadline: int
    pass_threshold: int
    dispute_window_seconds: int
    job_uri: str
    job_hash: str
    milestone_count: int


@dataclass(frozen=True)
class MilestoneAdded:
    position: LogPosition
    job_id: int
    milestone_index: int
    milestone_uri: str
    milestone_hash: str
    weight_bps: int


@dataclass(frozen=True)
class JobAwarded:
    position: LogPosition
    job_id: int
    agent_id: int


@dataclass(frozen=True)
class ProofSubmitted:
    position: LogPosition
    job_id: int
    milestone_index: int
    proof_uri: str
    proof_hash: str


@dataclass(frozen=True)
class ValidationRequested:
    position: LogPosition
    job_id: int
    milestone_index: int
    validator: str
    request_hash: str
    request_uri: str


@dataclass(frozen=True)
class JobFinalized:
    position: LogPosition
    job_id: int
    milestone_index: int
    payout_amount: int
    released_amount: int
    request_hash: str


@dataclass(frozen=True)
class DisputeOpened:
    position: LogPosition
    job_id: int
    proposed_payout_bps: int
    dispute_uri: str
    dispute_hash: str


@dataclass(frozen=True)
class DisputeAccepted:
    position: LogPosition
    job_id: int
    payout_amount: int
    remainder_amount: int


@dataclass(frozen=True)
class RemainderReclaimed:
    position: LogPosition
    job_id: int
    remainder_amount: int


IdentityEvent = Union[Registered, AgentURIUpdated]
ReputationEvent = Union[NewFeedback, FeedbackRevoked]
ValidationEvent = Union[RequestAppended, ResponseAppended]
JobBoardEvent = Union[
    JobPosted,
    MilestoneAdded,
    JobAwarded,
    ProofSubmitted,
    ValidationRequested,
    JobFinalized,
    DisputeOpened,
    DisputeAccepted,
    RemainderReclaimed,
]
DomainEvent = Union[IdentityEvent, ReputationEvent, ValidationEvent, JobBoardEvent]

EVENT_TYPES: dict[ContractFamily, Tuple[type, ...]] = {
    ContractFamily.IDENTITY: (Registered, AgentURIUpdated),
    ContractFamily.REPUTATION: (NewFeedback, FeedbackRevoked),
    ContractFamily.VALIDATION: (RequestAppended, ResponseAppended),
    ContractFamily.JOB_BOARD: (
        JobPosted,
        MilestoneAdded,
        JobAwarded,
        ProofSubmitted,
        ValidationRequested,
        JobFinalized,
        DisputeOpened,
        DisputeAccepted,
        RemainderReclaimed,
    ),
}

ALL_EVENT_TYPES: Tuple[type, ...] = tuple(t for types in EVENT_TYPES.values() for t in types)


__all__ = [
    "ALL_EVENT_TYPES",
    "AgentURIUpdated",
    "ContractFamily",
    "DisputeAccepted",
    "DisputeOpened",
    "DomainEvent",
    "EVENT_TYPES",
    "FeedbackRevoked",
    "IdentityEvent",
    "JobAwarded",
    "JobBoardEvent",
    "JobFinalized",
    "JobPosted",
    "LogPosition",
    "MilestoneAdded",
    "NewFeedback",
    "ProofSubmitted",
    "Registered",
    "RemainderReclaimed",
    "ReputationEvent",
    "RequestAppended",
    "ResponseAppended",
    "ValidationEvent",
    "ValidationRequested",
]
