"""Read-only endpoints over the registry read-model."""

from __future__ import annotations

from typing import List, Optional, Union

from fastapi import APIRouter, Depends, Query, Request

from registry_indexer.domain.models import (
    AgentScore,
    AgentSummary,
    FeedbackEntry,
    Job,
    JobDetail,
    PlatformStats,
    ValidationRecord,
)
from registry_indexer.query import QueryService

router = APIRouter()


def get_query(request: Request) -> QueryService:
    return request.app.state.query


@router.get("/health")
async def health(query: QueryService = Depends(get_query)):
    """Liveness plus sync progress."""
    return await query.health()


@router.get("/agents", response_model=List[AgentSummary])
async def list_agents(search: Optional[str] = None, query: QueryService = Depends(get_query)):
    """Agents ordered by reputation; `search` matches id, URI or owner."""
    return await query.list_agents(search)


@router.get("/agents/{agent_id}", response_model=AgentSummary)
async def get_agent(agent_id: str, query: QueryService = Depends(get_query)):
    return await query.get_agent(agent_id)


@router.get("/agents/{agent_id}/feedback", response_model=List[FeedbackEntry])
async def agent_feedback(agent_id: str, query: QueryService = Depends(get_query)):
    return await query.agent_feedback(agent_id)


@router.get("/agents/{agent_id}/validations", response_model=List[ValidationRecord])
async def agent_validations(agent_id: str, query: QueryService = Depends(get_query)):
    return await query.agent_validations(agent_id)


@router.get("/score", response_model=Union[AgentScore, List[AgentScore]])
async def score(
    agent_id: Optional[str] = Query(None, alias="agentId"),
    query: QueryService = Depends(get_query),
):
    """One agent's score breakdown with `?agentId=`, otherwise every agent's."""
    return await query.scores(agent_id)


@router.get("/stats", response_model=PlatformStats)
async def stats(query: QueryService = Depends(get_query)):
    return await query.stats()


@router.get("/jobs", response_model=List[Job])
async def list_jobs(query: QueryService = Depends(get_query)):
    return await query.list_jobs()


@router.get("/jobs/{job_id}", response_model=JobDetail)
async def job_detail(job_id: str, query: QueryService = Depends(get_query)):
    """Job with milestones, proofs, validations and dispute."""
    return await query.job_detail(job_id)


__all__ = ["get_query", "router"]
