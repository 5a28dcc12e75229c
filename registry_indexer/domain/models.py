"""
Domain models for the registry indexer read-model.

Row models mirror the tables in `registry_indexer.infrastructure.schema` and
are what the Store returns and the Query API serializes. Token amounts are
decimal strings (uint256 does not fit a float); addresses and hashes are
lowercase 0x-hex.
"""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field

JobStatus = Literal["open", "awarded", "finalized", "disputed", "reclaimed"]

_ROW_CONFIG = {
    "frozen": True,
    "populate_by_name": True,
    "from_attributes": True,
}


class Agent(BaseModel):
    """An identity registered in the identity registry."""

    agent_id: int
    owner: str
    agent_uri: Optional[str] = None
    agent_wallet: Optional[str] = None
    created_block: Optional[int] = None
    updated_block: Optional[int] = None

    model_config = _ROW_CONFIG


class AgentSummary(Agent):
    """Agent row plus its live reputation score."""

    reputation_score: float = 0.0


class FeedbackEntry(BaseModel):
    feedback_hash: str
    agent_id: int
    author: str
    value: int
    value_decimals: int
    normalized_value: float
    tag1: str = ""
    tag2: str = ""
    endpoint: str = ""
    feedback_uri: str = ""
    revoked: bool = False
    block_number: int

    model_config = _ROW_CONFIG


class ValidationRequest(BaseModel):
    request_hash: str
    agent_id: int
    validator: str
    request_uri: str = ""
    block_number: int

    model_config = _ROW_CONFIG


class ValidationResponse(BaseModel):
    response_hash: str
    request_hash: str
    response_score: int = Field(..., ge=0, le=100)
    response_uri: str = ""
    tag: str = ""
    block_number: int

    model_config = _ROW_CONFIG


class ValidationRecord(BaseModel):
    """A validation request joined with its latest response, if any."""

    request_hash: str
    agent_id: int
    validator: str
    request_uri: str
    request_block: int
    response_hash: Optional[str] = None
    response_score: Optional[int] = None
    response_uri: Optional[str] = None
    tag: Optional[str] = None
    response_block: Optional[int] = None

    model_config = _ROW_CONFIG


class ReviewerTrust(BaseModel):
    """Weight components applied to everything a reviewer authors."""

    reviewer: str
    allowlisted: bool = False
    stake_weight: float = Field(0.0, ge=0)
    identity_weight: float = Field(0.0, ge=0)
    updated_block: Optional[int] = None

    model_config = _ROW_CONFIG


class Job(BaseModel):
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

    model_config = _ROW_CONFIG


class JobMilestone(BaseModel):
    job_id: int
    milestone_index: int
    milestone_uri: Optional[str] = None
    milestone_hash: Optional[str] = None
    weight_bps: Optional[int] = None
    paid: bool = False

    model_config = _ROW_CONFIG


class JobProof(BaseModel):
    job_id: int
    milestone_index: int
    proof_uri: Optional[str] = None
    proof_hash: Optional[str] = None
    submitted_block: Optional[int] = None

    model_config = _ROW_CONFIG


class JobValidation(BaseModel):
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

    model_config = _ROW_CONFIG


class JobDispute(BaseModel):
    job_id: int
    proposed_payout_bps: Optional[int] = None
    dispute_uri: Optional[str] = None
    dispute_hash: Optional[str] = None
    accepted: bool = False
    payout_amount: Optional[str] = None
    remainder_amount: Optional[str] = None
    opened_block: Optional[int] = None
    accepted_block: Optional[int] = None
    reclaimed_block: Optional[int] = None

    model_config = _ROW_CONFIG


class JobDetail(BaseModel):
    job: Job
    milestones: List[JobMilestone] = Field(default_factory=list)
    proofs: List[JobProof] = Field(default_factory=list)
    validations: List[JobValidation] = Field(default_factory=list)
    dispute: Optional[JobDispute] = None


class AgentScore(BaseModel):
    agent_id: int
    feedback_score: float
    validation_score: float
    reputation_score: float

    model_config = {"frozen": True}


class PlatformStats(BaseModel):
    agent_count: int = 0
    feedback_count: int = 0
    validation_request_count: int = 0
    validation_response_count: int = 0
    reviewer_count: int = 0
    job_count: int = 0
    jobs_by_status: dict[str, int] = Field(default_factory=dict)


__all__ = [
    "Agent",
    "AgentScore",
    "AgentSummary",
    "FeedbackEntry",
    "Job",
    "JobDetail",
    "JobDispute",
    "JobMilestone",
    "JobProof",
    "JobStatus",
    "JobValidation",
    "PlatformStats",
    "ReviewerTrust",
    "ValidationRecord",
    "ValidationRequest",
    "ValidationResponse",
]
