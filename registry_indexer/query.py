"""
Query service: the read operations behind the HTTP API and the CLI.

Ids arrive as raw strings. Anything that is not a non-negative decimal integer
raises `BadRequestError` (400); an id the read-model has never seen raises
`NotFoundError` (404).
"""

from __future__ import annotations

import re
from typing import Any, Dict, List, Optional, Union

from registry_indexer.config import Deployments, IndexerMode
from registry_indexer.domain.models import (
    AgentScore,
    AgentSummary,
    FeedbackEntry,
    Job,
    JobDetail,
    PlatformStats,
    ValidationRecord,
)
from registry_indexer.errors import BadRequestError, NotFoundError
from registry_indexer.infrastructure.store import Store
from registry_indexer.scoring import ScoreEngine

_ID_PATTERN = re.compile(r"[0-9]+")


def parse_id(raw: Union[str, int, None], label: str = "id") -> int:
    """Parse a path or query id; raises BadRequestError for negatives and non-numbers."""
    if isinstance(raw, int) and not isinstance(raw, bool):
        if raw < 0:
            raise BadRequestError(f"Invalid {label}: {raw}")
        return raw
    text = (raw or "").strip()
    if not _ID_PATTERN.fullmatch(text):
        raise BadRequestError(f"Invalid {label}: {raw!r}")
    return int(text)


class QueryService:
    """
    Parameters
    ----------
    store : Store
        Read-model.
    scores : ScoreEngine
        Computes reputation on every call.
    mode : IndexerMode
        Reported by `health`.
    deployments : Deployments
        Reported by `health`.
    """

    def __init__(self, store: Store, scores: ScoreEngine, mode: IndexerMode, deployments: Deployments) -> None:
        self._store = store
        self._scores = scores
        self._mode = mode
        self._deployments = deployments

    async def health(self) -> Dict[str, Any]:
        return {
            "status": "ok",
            "mode": self._mode,
            "lastSyncedBlock": await self._store.get_watermark() or 0,
            "deployments": self._deployments.model_dump(by_alias=True, exclude_none=True),
        }

    async def list_agents(self, search: Optional[str] = None) -> List[AgentSummary]:
        """Agents matching `search` (all when empty), highest reputation first."""
        agents = await self._store.list_agents(search)
        by_id = {score.agent_id: score.reputation_score for score in await self._scores.all_scores()}
        summaries = [
            AgentSummary(**agent.model_dump(), reputation_score=by_id.get(agent.agent_id, 0.0))
            for agent in agents
        ]
        summaries.sort(key=lambda s: (-s.reputation_score, s.agent_id))
        return summaries

    async def get_agent(self, raw_id: Union[str, int]) -> AgentSummary:
        agent_id = parse_id(raw_id, "agent id")
        agent = await self._store.get_agent(agent_id)
        if agent is None:
            raise NotFoundError(f"Agent {agent_id} not found")
        score = await self._scores.score(agent_id)
        return AgentSummary(**agent.model_dump(), reputation_score=score.reputation_score if score else 0.0)

    async def _require_agent(self, raw_id: Union[str, int]) -> int:
        agent_id = parse_id(raw_id, "agent id")
        if await self._store.get_agent(agent_id) is None:
            raise NotFoundError(f"Agent {agent_id} not found")
        return agent_id

    async def agent_feedback(self, raw_id: Union[str, int]) -> List[FeedbackEntry]:
        return await self._store.list_feedback(await self._require_agent(raw_id))

    async def agent_validations(self, raw_id: Union[str, int]) -> List[ValidationRecord]:
        return await self._store.list_validations(await self._require_agent(raw_id))

    async def scores(self, raw_agent_id: Optional[str] = None) -> Union[AgentScore, List[AgentScore]]:
        """Score breakdown of one agent, or of every agent when no id is given."""
        if raw_agent_id is None or raw_agent_id == "":
            return await self._scores.all_scores()
        agent_id = parse_id(raw_agent_id, "agent id")
        score = await self._scores.score(agent_id)
        if score is None:
            raise NotFoundError(f"Agent {agent_id} not found")
        return score

    async def stats(self) -> PlatformStats:
        return await self._store.stats()

    async def list_jobs(self) -> List[Job]:
        return await self._store.list_jobs()

    async def job_detail(self, raw_id: Union[str, int]) -> JobDetail:
        job_id = parse_id(raw_id, "job id")
        detail = await self._store.get_job_detail(job_id)
        if detail is None:
            raise NotFoundError(f"Job {job_id} not found")
        return detail


__all__ = ["QueryService", "parse_id"]
