from __future__ import annotations

import logging

import pytest

from registry_fakes import (
    IDENTITY,
    JOB_BOARD,
    REPUTATION,
    VALIDATION,
    FakeEventSource,
    addr,
    declaration,
    encode_word,
    h32,
    make_log,
)
from registry_indexer.chain.abi import encode_uint256_call
from registry_indexer.config import Deployments
from registry_indexer.decoders import (
    ContractDecoder,
    IdentityDecoder,
    JobBoardDecoder,
    ReputationDecoder,
    ValidationDecoder,
    build_decoders,
)
from registry_indexer.decoders.identity import AGENT_WALLET_SIGNATURE
from registry_indexer.domain import events as ev
from registry_indexer.domain.events import EVENT_TYPES, ContractFamily
from registry_indexer.errors import AbiDecodeError

OWNER = addr(0x11)
WALLET = addr(0x22)


def _registered(agent_id: int = 1, block: int = 10):
    return make_log(
        declaration(IdentityDecoder, "Registered"),
        {"agentId": agent_id, "owner": OWNER, "agentURI": f"ipfs://agent-{agent_id}"},
        address=IDENTITY,
        block=block,
    )


@pytest.mark.asyncio
async def test_registered_resolves_wallet_at_log_block():
    source = FakeEventSource(call_result="0x" + encode_word("address", WALLET).hex())
    decoder = IdentityDecoder(source, IDENTITY)

    event = await decoder.decode(_registered(agent_id=3, block=42))

    assert isinstance(event, ev.Registered)
    assert event.agent_id == 3
    assert event.owner == OWNER
    assert event.agent_uri == "ipfs://agent-3"
    assert event.agent_wallet == WALLET
    assert event.position.block_number == 42
    assert source.calls == [(IDENTITY, encode_uint256_call(AGENT_WALLET_SIGNATURE, 3), 42)]


@pytest.mark.asyncio
@pytest.mark.parametrize("result", ["0x", "0x" + "00" * 32])
async def test_registered_without_wallet_decodes_to_none(result):
    decoder = IdentityDecoder(FakeEventSource(call_result=result), IDENTITY)
    event = await decoder.decode(_registered())
    assert event.agent_wallet is None


@pytest.mark.asyncio
async def test_agent_uri_updated():
    decoder = IdentityDecoder(FakeEventSource(), IDENTITY)
    raw = make_log(
        declaration(IdentityDecoder, "AgentURIUpdated"), {"agentId": 9, "agentURI": "https://new"}, block=5
    )
    event = await decoder.decode(raw)
    assert event == ev.AgentURIUpdated(position=event.position, agent_id=9, agent_uri="https://new")


@pytest.mark.asyncio
async def test_unknown_topic_is_skipped():
    decoder = ReputationDecoder()
    foreign = make_log("Transfer(address indexed from,address indexed to,uint256 value)",
                       {"from": OWNER, "to": WALLET, "value": 1}, address=REPUTATION)
    assert await decoder.decode(foreign) is None


@pytest.mark.asyncio
async def test_known_topic_with_bad_data_raises():
    decoder = ReputationDecoder()
    raw = make_log(
        declaration(ReputationDecoder, "FeedbackRevoked"),
        {"feedbackHash": h32(1), "author": OWNER},
        address=REPUTATION,
    )
    broken = raw.model_copy(update={"topics": raw.topics[:2]})
    with pytest.raises(AbiDecodeError):
        await decoder.decode(broken)


@pytest.mark.asyncio
async def test_new_feedback_keeps_signed_value_and_normalizes():
    decoder = ReputationDecoder()
    raw = make_log(
        declaration(ReputationDecoder, "NewFeedback"),
        {
            "agentId": 4,
            "author": OWNER,
            "value": -150,
            "valueDecimals": 2,
            "feedbackHash": h32(77),
            "tag1": "latency",
            "tag2": "",
            "endpoint": "https://agent/api",
            "feedbackURI": "ipfs://fb",
        },
        address=REPUTATION,
    )
    event = await decoder.decode(raw)
    assert isinstance(event, ev.NewFeedback)
    assert event.value == -150
    assert event.normalized_value == pytest.approx(-1.5)
    assert event.feedback_hash == h32(77)
    assert event.tag1 == "latency"


@pytest.mark.asyncio
async def test_validation_response_score_out_of_range_is_skipped(caplog):
    decoder = ValidationDecoder()
    raw = make_log(
        declaration(ValidationDecoder, "ResponseAppended"),
        {"requestHash": h32(1), "responseHash": h32(2), "response0to100": 101, "responseURI": "", "tag": ""},
        address=VALIDATION,
        block=12,
    )
    with caplog.at_level(logging.WARNING, logger="registry_indexer.decoders.validation"):
        assert await decoder.decode(raw) is None
    [record] = [r for r in caplog.records if r.name == "registry_indexer.decoders.validation"]
    assert record.score == 101
    assert record.block == 12


@pytest.mark.asyncio
async def test_job_posted_decodes_every_field():
    decoder = JobBoardDecoder()
    raw = make_log(
        declaration(JobBoardDecoder, "JobPosted"),
        {
            "jobId": 12,
            "owner": OWNER,
            "paymentToken": WALLET,
            "budgetAmount": 10**24,
            "deadline": 1_900_000_000,
            "passThreshold": 70,
            "disputeWindowSeconds": 86_400,
            "jobURI": "ipfs://job",
            "jobHash": h32(5),
            "milestoneCount": 3,
        },
        address=JOB_BOARD,
        block=100,
        log_index=4,
    )
    event = await decoder.decode(raw)
    assert isinstance(event, ev.JobPosted)
    assert event.budget_amount == 10**24
    assert event.pass_threshold == 70
    assert event.milestone_count == 3
    assert (event.position.block_number, event.position.log_index) == (100, 4)


def test_every_declared_event_has_a_type():
    for decoder_cls in (ReputationDecoder, ValidationDecoder, JobBoardDecoder):
        decoder = decoder_cls()
        assert isinstance(decoder, ContractDecoder)
        names = {abi.name for abi in decoder.events.values()}
        assert names == {cls.__name__ for cls in EVENT_TYPES[decoder.family]}


def test_build_decoders_skips_missing_job_board():
    deployments = Deployments(
        chain_id=31337,
        identity_registry=IDENTITY.upper().replace("0X", "0x"),
        reputation_registry=REPUTATION,
        validation_registry=VALIDATION,
    )
    bindings = build_decoders(deployments, FakeEventSource())
    assert [b.decoder.family for b in bindings] == [
        ContractFamily.IDENTITY,
        ContractFamily.REPUTATION,
        ContractFamily.VALIDATION,
    ]
    assert bindings[0].address == IDENTITY

    with_board = build_decoders(deployments.model_copy(update={"job_board_escrow": JOB_BOARD}), FakeEventSource())
    assert with_board[-1].decoder.family is ContractFamily.JOB_BOARD
