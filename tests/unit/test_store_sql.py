from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from registry_indexer.domain.models import Agent
from registry_indexer.domain.patches import JobDisputePatch, JobMilestonePatch, JobPatch
from registry_indexer.infrastructure.schema import DDL, TABLES
from registry_indexer.infrastructure.store import _like_term, build_patch_upsert


def test_patch_changes_only_include_set_fields():
    patch = JobPatch(job_id=3, agent_id=9, status="awarded", awarded_block=120)
    assert patch.changes() == {"job_id": 3, "agent_id": 9, "status": "awarded", "awarded_block": 120}
    assert patch.owned_columns() == ("agent_id", "status", "awarded_block")


def test_explicit_none_counts_as_set():
    patch = JobPatch(job_id=3, agent_id=None)
    assert patch.changes() == {"job_id": 3, "agent_id": None}


def test_patch_rejects_unknown_columns_and_status():
    with pytest.raises(ValidationError):
        JobPatch(job_id=1, not_a_column=1)
    with pytest.raises(ValidationError):
        JobPatch(job_id=1, status="cancelled")


def test_upsert_updates_only_owned_columns():
    sql, params = build_patch_upsert(JobPatch(job_id=7, status="awarded", agent_id=2))
    assert sql == (
        "INSERT INTO jobs (job_id, agent_id, status) VALUES (%(job_id)s, %(agent_id)s, %(status)s) "
        "ON CONFLICT (job_id) DO UPDATE SET agent_id = EXCLUDED.agent_id, status = EXCLUDED.status"
    )
    assert params == {"job_id": 7, "agent_id": 2, "status": "awarded"}
    assert "owner" not in sql


def test_upsert_composite_key():
    sql, params = build_patch_upsert(JobMilestonePatch(job_id=1, milestone_index=2, paid=True))
    assert "ON CONFLICT (job_id, milestone_index) DO UPDATE SET paid = EXCLUDED.paid" in sql
    assert params == {"job_id": 1, "milestone_index": 2, "paid": True}


def test_key_only_patch_does_nothing_on_conflict():
    sql, params = build_patch_upsert(JobDisputePatch(job_id=4))
    assert sql.endswith("ON CONFLICT (job_id) DO NOTHING")
    assert params == {"job_id": 4}


def test_like_term_escapes_wildcards():
    assert _like_term("agent") == "%agent%"
    assert _like_term("50%_off") == "%50\\%\\_off%"


def test_schema_creates_every_table():
    ddl = "\n".join(DDL)
    for table in TABLES:
        assert f"CREATE TABLE IF NOT EXISTS {table} " in ddl


def test_uint256_columns_hold_full_range():
    ddl = "\n".join(DDL)
    assert "agent_id NUMERIC(78, 0) PRIMARY KEY" in ddl
    assert "job_id NUMERIC(78, 0) PRIMARY KEY" in ddl
    assert "milestone_index NUMERIC(78, 0) NOT NULL" in ddl
    assert "agent_id BIGINT" not in ddl
    assert "job_id BIGINT" not in ddl


def test_numeric_ids_read_back_as_int():
    beyond_bigint = 2**64 + 1
    agent = Agent.model_validate({"agent_id": Decimal(beyond_bigint), "owner": "0x01"})
    assert agent.agent_id == beyond_bigint
    assert isinstance(agent.agent_id, int)
