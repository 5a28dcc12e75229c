"""
Domain package for the registry indexer.

Exports the read-model rows, the partial-update patches and the typed contract
events. Keep this package focused on data definitions and validation concerns.
"""

from registry_indexer.domain.events import ContractFamily, DomainEvent, LogPosition
from registry_indexer.domain.models import (
    Agent,
    AgentScore,
    AgentSummary,
    FeedbackEntry,
    Job,
    JobDetail,
    JobDispute,
    JobMilestone,
    JobProof,
    JobValidation,
    PlatformStats,
    ReviewerTrust,
    ValidationRecord,
    ValidationRequest,
    ValidationResponse,
)
from registry_indexer.domain.patches import (
    JobDisputePatch,
    JobMilestonePatch,
    JobPatch,
    JobProofPatch,
    JobValidationPatch,
)

__all__ = [
    # Events
    "ContractFamily",
    "DomainEvent",
    "LogPosition",
    # Rows
    "Agent",
    "AgentScore",
    "AgentSummary",
    "FeedbackEntry",
    "Job",
    "JobDetail",
    "JobDispute",
    "JobMilestone",
    "JobProof",
    "JobValidation",
    "PlatformStats",
    "ReviewerTrust",
    "ValidationRecord",
    "ValidationRequest",
    "ValidationResponse",
    # Patches
    "JobDisputePatch",
    "JobMilestonePatch",
    "JobPatch",
    "JobProofPatch",
    "JobValidationPatch",
]
