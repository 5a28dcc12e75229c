"""
PostgreSQL schema for the registry read-model.

Every statement is idempotent, so `apply_schema` can run on each start.
Agent ids, job ids, milestone indexes and the other uint256 fields are
NUMERIC(78, 0); psycopg reads them back as Decimal and the models coerce them
to int. Token amounts are TEXT holding decimal strings. Block numbers stay
BIGINT. Tables created by an older BIGINT schema are not altered.
"""

from __future__ import annotations

from typing import Tuple

from psycopg import AsyncConnection

from registry_indexer.utils.logging import get_logger

log = get_logger(__name__)

WATERMARK_KEY = "last_synced_block"

DDL: Tuple[str, ...] = (
    """
    CREATE TABLE IF NOT EXISTS meta (
        key TEXT PRIMARY KEY,
        value TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS agents (
        agent_id NUMERIC(78, 0) PRIMARY KEY,
        owner TEXT NOT NULL,
        agent_uri TEXT,
        agent_wallet TEXT,
        created_block BIGINT,
        updated_block BIGINT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS feedback (
        feedback_hash TEXT PRIMARY KEY,
        agent_id NUMERIC(78, 0) NOT NULL,
        author TEXT NOT NULL,
        value NUMERIC(78, 0) NOT NULL,
        value_decimals SMALLINT NOT NULL,
        normalized_value DOUBLE PRECISION NOT NULL,
        tag1 TEXT NOT NULL DEFAULT '',
        tag2 TEXT NOT NULL DEFAULT '',
        endpoint TEXT NOT NULL DEFAULT '',
        feedback_uri TEXT NOT NULL DEFAULT '',
        revoked BOOLEAN NOT NULL DEFAULT FALSE,
        block_number BIGINT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS feedback_agent_idx ON feedback (agent_id)",
    """
    CREATE TABLE IF NOT EXISTS validation_requests (
        request_hash TEXT PRIMARY KEY,
        agent_id NUMERIC(78, 0) NOT NULL,
        validator TEXT NOT NULL,
        request_uri TEXT NOT NULL DEFAULT '',
        block_number BIGINT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS validation_requests_agent_idx ON validation_requests (agent_id)",
    """
    CREATE TABLE IF NOT EXISTS validation_responses (
        response_hash TEXT PRIMARY KEY,
        request_hash TEXT NOT NULL,
        response_score SMALLINT NOT NULL CHECK (response_score BETWEEN 0 AND 100),
        response_uri TEXT NOT NULL DEFAULT '',
        tag TEXT NOT NULL DEFAULT '',
        block_number BIGINT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS validation_responses_request_idx ON validation_responses (request_hash)",
    """
    CREATE TABLE IF NOT EXISTS reviewer_trust (
        reviewer TEXT PRIMARY KEY,
        allowlisted BOOLEAN NOT NULL DEFAULT FALSE,
        stake_weight DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (stake_weight >= 0),
        identity_weight DOUBLE PRECISION NOT NULL DEFAULT 0 CHECK (identity_weight >= 0),
        updated_block BIGINT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS jobs (
        job_id NUMERIC(78, 0) PRIMARY KEY,
        owner TEXT,
        agent_id NUMERIC(78, 0),
        job_uri TEXT,
        job_hash TEXT,
        payment_token TEXT,
        budget_amount TEXT,
        deadline NUMERIC(78, 0),
        pass_threshold INTEGER,
        dispute_window_seconds NUMERIC(78, 0),
        milestone_count NUMERIC(78, 0),
        status TEXT CHECK (status IN ('open', 'awarded', 'finalized', 'disputed', 'reclaimed')),
        posted_block BIGINT,
        awarded_block BIGINT,
        finalized_block BIGINT,
        released_amount TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_milestones (
        job_id NUMERIC(78, 0) NOT NULL,
        milestone_index NUMERIC(78, 0) NOT NULL,
        milestone_uri TEXT,
        milestone_hash TEXT,
        weight_bps INTEGER,
        paid BOOLEAN NOT NULL DEFAULT FALSE,
        PRIMARY KEY (job_id, milestone_index)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_proofs (
        job_id NUMERIC(78, 0) NOT NULL,
        milestone_index NUMERIC(78, 0) NOT NULL,
        proof_uri TEXT,
        proof_hash TEXT,
        submitted_block BIGINT,
        PRIMARY KEY (job_id, milestone_index)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_validations (
        job_id NUMERIC(78, 0) NOT NULL,
        milestone_index NUMERIC(78, 0) NOT NULL,
        validator TEXT,
        request_hash TEXT,
        request_uri TEXT,
        request_block BIGINT,
        response_score SMALLINT,
        response_hash TEXT,
        response_uri TEXT,
        tag TEXT,
        response_block BIGINT,
        PRIMARY KEY (job_id, milestone_index)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS job_disputes (
        job_id NUMERIC(78, 0) PRIMARY KEY,
        proposed_payout_bps INTEGER,
        dispute_uri TEXT,
        dispute_hash TEXT,
        accepted BOOLEAN NOT NULL DEFAULT FALSE,
        payout_amount TEXT,
        remainder_amount TEXT,
        opened_block BIGINT,
        accepted_block BIGINT,
        reclaimed_block BIGINT
    )
    """,
)

TABLES: Tuple[str, ...] = (
    "agents",
    "feedback",
    "validation_requests",
    "validation_responses",
    "reviewer_trust",
    "jobs",
    "job_milestones",
    "job_proofs",
    "job_validations",
    "job_disputes",
    "meta",
)


async def apply_schema(conn: AsyncConnection) -> None:
    """Create all tables and indexes that do not exist yet, in one transaction."""
    async with conn.transaction():
        for statement in DDL:
            await conn.execute(statement)
    log.info("Schema applied", extra={"statements": len(DDL)})


__all__ = ["DDL", "TABLES", "WATERMARK_KEY", "apply_schema"]
