"""
Store: the PostgreSQL read-model the sync engine writes and the API reads.

Writes go through `Store.writer()`, which opens one transaction and yields a
`StoreWriter`; everything written inside the block commits or rolls back
together. Reads borrow a pooled connection per call.

Every write is idempotent so that re-applying a block range leaves the same
rows behind:

- inserts of immutable facts use ON CONFLICT DO NOTHING,
- feedback re-inserts only ever touch `revoked`, and never clear it,
- multi-event rows (jobs, milestones, proofs, job validations, disputes) are
  written from `RowPatch` objects, updating exactly the columns the patch set,
- the watermark only moves forward (GREATEST).
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from registry_indexer.domain.models import (
    Agent,
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
from registry_indexer.domain.patches import RowPatch
from registry_indexer.infrastructure.schema import WATERMARK_KEY
from registry_indexer.scoring import FeedbackSignal, ScoreInputs, ValidationSignal
from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)

# Latest response per request; responses in the same block tie-break on hash.
_LATEST_RESPONSE = """
    LEFT JOIN LATERAL (
        SELECT v.response_hash, v.response_score, v.response_uri, v.tag, v.block_number
        FROM validation_responses v
        WHERE v.request_hash = r.request_hash
        ORDER BY v.block_number DESC, v.response_hash DESC
        LIMIT 1
    ) resp ON TRUE
"""


def build_patch_upsert(patch: RowPatch) -> Tuple[str, Dict[str, Any]]:
    """
    Render an upsert for `patch` that writes only the columns it set.

    Returns
    -------
    tuple[str, dict]
        SQL with named placeholders, and its parameters.

    Example
    -------
        build_patch_upsert(JobPatch(job_id=7, status="awarded"))
        # INSERT INTO jobs (job_id, status) VALUES (%(job_id)s, %(status)s)
        # ON CONFLICT (job_id) DO UPDATE SET status = EXCLUDED.status
    """
    params = patch.changes()
    columns = list(patch.key) + list(patch.owned_columns())
    placeholders = ", ".join(f"%({column})s" for column in columns)
    statement = (
        f"INSERT INTO {patch.table} ({', '.join(columns)}) VALUES ({placeholders}) "
        f"ON CONFLICT ({', '.join(patch.key)}) "
    )
    owned = patch.owned_columns()
    if owned:
        statement += "DO UPDATE SET " + ", ".join(f"{column} = EXCLUDED.{column}" for column in owned)
    else:
        statement += "DO NOTHING"
    return statement, {column: params[column] for column in columns}


def _like_term(search: str) -> str:
    escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class StoreWriter:
    """Mutations available inside one `Store.writer()` transaction."""

    def __init__(self, conn: AsyncConnection) -> None:
        self._conn = conn

    async def upsert_agent(
        self,
        agent_id: int,
        owner: str,
        agent_uri: str,
        agent_wallet: Optional[str],
        block_number: int,
    ) -> None:
        await self._conn.execute(
            """
            INSERT INTO agents (agent_id, owner, agent_uri, agent_wallet, created_block, updated_block)
            VALUES (%(agent_id)s, %(owner)s, %(agent_uri)s, %(agent_wallet)s, %(block)s, %(block)s)
            ON CONFLICT (agent_id) DO UPDATE SET
                owner = EXCLUDED.owner,
                agent_uri = EXCLUDED.agent_uri,
                agent_wallet = EXCLUDED.agent_wallet,
                updated_block = EXCLUDED.updated_block
            """,
            {
                "agent_id": agent_id,
                "owner": owner,
                "agent_uri": agent_uri,
                "agent_wallet": agent_wallet,
                "block": block_number,
            },
        )

    async def update_agent_uri(self, agent_id: int, agent_uri: str, block_number: int) -> None:
        await self._conn.execute(
            "UPDATE agents SET agent_uri = %s, updated_block = %s WHERE agent_id = %s",
            (agent_uri, block_number, agent_id),
        )

    async def insert_feedback(self, entry: FeedbackEntry) -> None:
        await self._conn.execute(
            """
            INSERT INTO feedback (
                feedback_hash, agent_id, author, value, value_decimals, normalized_value,
                tag1, tag2, endpoint, feedback_uri, revoked, block_number
            ) VALUES (
                %(feedback_hash)s, %(agent_id)s, %(author)s, %(value)s, %(value_decimals)s, %(normalized_value)s,
                %(tag1)s, %(tag2)s, %(endpoint)s, %(feedback_uri)s, %(revoked)s, %(block_number)s
            )
            ON CONFLICT (feedback_hash) DO UPDATE SET revoked = feedback.revoked OR EXCLUDED.revoked
            """,
            entry.model_dump(),
        )

    async def revoke_feedback(self, feedback_hash: str, block_number: int) -> None:
        await self._conn.execute(
            "UPDATE feedback SET revoked = TRUE, block_number = %s WHERE feedback_hash = %s",
            (block_number, feedback_hash),
        )

    async def insert_validation_request(self, request: ValidationRequest) -> None:
        await self._conn.execute(
            """
            INSERT INTO validation_requests (request_hash, agent_id, validator, request_uri, block_number)
            VALUES (%(request_hash)s, %(agent_id)s, %(validator)s, %(request_uri)s, %(block_number)s)
            ON CONFLICT (request_hash) DO NOTHING
            """,
            request.model_dump(),
        )

    async def insert_validation_response(self, response: ValidationResponse) -> None:
        await self._conn.execute(
            """
            INSERT INTO validation_responses (response_hash, request_hash, response_score, response_uri, tag, block_number)
            VALUES (%(response_hash)s, %(request_hash)s, %(response_score)s, %(response_uri)s, %(tag)s, %(block_number)s)
            ON CONFLICT (response_hash) DO NOTHING
            """,
            response.model_dump(),
        )

    async def upsert_reviewer_trust(self, trust: ReviewerTrust) -> None:
        await self._conn.execute(
            """
            INSERT INTO reviewer_trust (reviewer, allowlisted, stake_weight, identity_weight, updated_block)
            VALUES (%(reviewer)s, %(allowlisted)s, %(stake_weight)s, %(identity_weight)s, %(updated_block)s)
            ON CONFLICT (reviewer) DO UPDATE SET
                allowlisted = EXCLUDED.allowlisted,
                stake_weight = EXCLUDED.stake_weight,
                identity_weight = EXCLUDED.identity_weight,
                updated_block = EXCLUDED.updated_block
            """,
            trust.model_dump(),
        )

    async def apply_patch(self, patch: RowPatch) -> None:
        statement, params = build_patch_upsert(patch)
        await self._conn.execute(statement, params)

    async def set_watermark(self, block_number: int) -> None:
        await self._conn.execute(
            """
            INSERT INTO meta (key, value) VALUES (%(key)s, %(value)s)
            ON CONFLICT (key) DO UPDATE SET
                value = GREATEST(meta.value::BIGINT, EXCLUDED.value::BIGINT)::TEXT
            """,
            {"key": WATERMARK_KEY, "value": str(block_number)},
        )


class Store:
    """
    Read-model access over an open `AsyncConnectionPool`.

    Parameters
    ----------
    pool : AsyncConnectionPool
        An opened pool (see `PoolManager.open`).
    """

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    @asynccontextmanager
    async def writer(self) -> AsyncIterator[StoreWriter]:
        """Yield a writer bound to one transaction; commits on clean exit."""
        async with self._pool.connection() as conn:
            async with conn.transaction():
                yield StoreWriter(conn)

    async def _fetch_all(self, query: str, params: Any = None) -> List[Dict[str, Any]]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                return await cur.fetchall()

    async def _fetch_one(self, query: str, params: Any = None) -> Optional[Dict[str, Any]]:
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute(query, params)
                return await cur.fetchone()

    # Sync state

    async def get_watermark(self) -> Optional[int]:
        """Last fully applied block, or None before the first range commits."""
        row = await self._fetch_one("SELECT value FROM meta WHERE key = %s", (WATERMARK_KEY,))
        return int(row["value"]) if row else None

    # Agents

    async def list_agents(self, search: Optional[str] = None) -> List[Agent]:
        if search and search.strip():
            rows = await self._fetch_all(
                """
                SELECT * FROM agents
                WHERE agent_id::TEXT ILIKE %(term)s OR agent_uri ILIKE %(term)s OR owner ILIKE %(term)s
                ORDER BY agent_id
                """,
                {"term": _like_term(search.strip())},
            )
        else:
            rows = await self._fetch_all("SELECT * FROM agents ORDER BY agent_id")
        return [Agent.model_validate(row) for row in rows]

    async def get_agent(self, agent_id: int) -> Optional[Agent]:
        row = await self._fetch_one("SELECT * FROM agents WHERE agent_id = %s", (agent_id,))
        return Agent.model_validate(row) if row else None

    async def list_feedback(self, agent_id: int) -> List[FeedbackEntry]:
        rows = await self._fetch_all(
            "SELECT * FROM feedback WHERE agent_id = %s ORDER BY block_number DESC, feedback_hash",
            (agent_id,),
        )
        return [FeedbackEntry.model_validate(row) for row in rows]

    async def list_validations(self, agent_id: int) -> List[ValidationRecord]:
        rows = await self._fetch_all(
            f"""
            SELECT r.request_hash, r.agent_id, r.validator, r.request_uri, r.block_number AS request_block,
                   resp.response_hash, resp.response_score, resp.response_uri, resp.tag,
                   resp.block_number AS response_block
            FROM validation_requests r
            {_LATEST_RESPONSE}
            WHERE r.agent_id = %(agent_id)s
            ORDER BY r.block_number DESC, r.request_hash
            """,
            {"agent_id": agent_id},
        )
        return [ValidationRecord.model_validate(row) for row in rows]

    # Scoring

    async def load_score_inputs(self, agent_id: Optional[int] = None) -> ScoreInputs:
        """
        Load agents, live feedback, answered validations and trust in one snapshot.

        When `agent_id` is given only that agent's signals are loaded.
        """
        scope = "" if agent_id is None else "AND agent_id = %(agent_id)s"
        request_scope = "" if agent_id is None else "AND r.agent_id = %(agent_id)s"
        params = {"agent_id": agent_id}
        async with self._pool.connection() as conn:
            async with conn.transaction():
                await conn.execute("SET TRANSACTION ISOLATION LEVEL REPEATABLE READ")
                async with conn.cursor(row_factory=dict_row) as cur:
                    await cur.execute(f"SELECT agent_id FROM agents WHERE TRUE {scope}", params)
                    agent_ids = [int(row["agent_id"]) for row in await cur.fetchall()]

                    await cur.execute(
                        f"SELECT agent_id, author, normalized_value FROM feedback WHERE NOT revoked {scope}",
                        params,
                    )
                    feedback = [
                        FeedbackSignal(**{**row, "agent_id": int(row["agent_id"])}) for row in await cur.fetchall()
                    ]

                    await cur.execute(
                        f"""
                        SELECT r.agent_id, r.validator, resp.response_score
                        FROM validation_requests r
                        {_LATEST_RESPONSE}
                        WHERE resp.response_score IS NOT NULL {request_scope}
                        """,
                        params,
                    )
                    validations = [
                        ValidationSignal(**{**row, "agent_id": int(row["agent_id"])}) for row in await cur.fetchall()
                    ]

                    await cur.execute("SELECT * FROM reviewer_trust")
                    trust = {row["reviewer"]: ReviewerTrust.model_validate(row) for row in await cur.fetchall()}

        return ScoreInputs(agent_ids=agent_ids, feedback=feedback, validations=validations, trust=trust)

    async def list_reviewer_trust(self) -> List[ReviewerTrust]:
        rows = await self._fetch_all("SELECT * FROM reviewer_trust ORDER BY reviewer")
        return [ReviewerTrust.model_validate(row) for row in rows]

    # Platform

    async def stats(self) -> PlatformStats:
        row = await self._fetch_one(
            """
            SELECT
                (SELECT COUNT(*) FROM agents) AS agent_count,
                (SELECT COUNT(*) FROM feedback) AS feedback_count,
                (SELECT COUNT(*) FROM validation_requests) AS validation_request_count,
                (SELECT COUNT(*) FROM validation_responses) AS validation_response_count,
                (SELECT COUNT(*) FROM (
                    SELECT author FROM feedback
                    UNION
                    SELECT validator FROM validation_requests
                ) reviewers) AS reviewer_count,
                (SELECT COUNT(*) FROM jobs) AS job_count
            """
        )
        by_status = await self._fetch_all(
            "SELECT status, COUNT(*) AS count FROM jobs WHERE status IS NOT NULL GROUP BY status ORDER BY status"
        )
        return PlatformStats(
            **(row or {}),
            jobs_by_status={entry["status"]: entry["count"] for entry in by_status},
        )

    # Jobs

    async def list_jobs(self) -> List[Job]:
        rows = await self._fetch_all("SELECT * FROM jobs ORDER BY job_id DESC")
        return [Job.model_validate(row) for row in rows]

    async def get_job_detail(self, job_id: int) -> Optional[JobDetail]:
        """Job with its milestones, proofs, validations and dispute; None if unknown."""
        async with self._pool.connection() as conn:
            async with conn.cursor(row_factory=dict_row) as cur:
                await cur.execute("SELECT * FROM jobs WHERE job_id = %s", (job_id,))
                job = await cur.fetchone()
                if job is None:
                    return None

                await cur.execute(
                    "SELECT * FROM job_milestones WHERE job_id = %s ORDER BY milestone_index", (job_id,)
                )
                milestones = [JobMilestone.model_validate(row) for row in await cur.fetchall()]

                await cur.execute("SELECT * FROM job_proofs WHERE job_id = %s ORDER BY milestone_index", (job_id,))
                proofs = [JobProof.model_validate(row) for row in await cur.fetchall()]

                await cur.execute(
                    """
                    SELECT jv.job_id, jv.milestone_index, jv.validator, jv.request_hash, jv.request_uri,
                           jv.request_block,
                           COALESCE(jv.response_score, resp.response_score) AS response_score,
                           COALESCE(jv.response_hash, resp.response_hash) AS response_hash,
                           COALESCE(jv.response_uri, resp.response_uri) AS response_uri,
                           COALESCE(jv.tag, resp.tag) AS tag,
                           COALESCE(jv.response_block, resp.block_number) AS response_block
                    FROM job_validations jv
                    LEFT JOIN LATERAL (
                        SELECT v.response_hash, v.response_score, v.response_uri, v.tag, v.block_number
                        FROM validation_responses v
                        WHERE v.request_hash = jv.request_hash
                        ORDER BY v.block_number DESC, v.response_hash DESC
                        LIMIT 1
                    ) resp ON TRUE
                    WHERE jv.job_id = %s
                    ORDER BY jv.milestone_index
                    """,
                    (job_id,),
                )
                validations = [JobValidation.model_validate(row) for row in await cur.fetchall()]

                await cur.execute("SELECT * FROM job_disputes WHERE job_id = %s", (job_id,))
                dispute = await cur.fetchone()

        return JobDetail(
            job=Job.model_validate(job),
            milestones=milestones,
            proofs=proofs,
            validations=validations,
            dispute=JobDispute.model_validate(dispute) if dispute else None,
        )


__all__ = ["Store", "StoreWriter", "build_patch_upsert"]
