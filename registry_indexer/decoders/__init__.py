"""
Decoders package for the registry indexer.

Re-exports the decoder interfaces and the concrete per-contract decoders, and
binds them to the addresses of one deployment via `build_decoders`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

from registry_indexer.chain.rpc import EventSource
from registry_indexer.config import Deployments
from registry_indexer.decoders.abstract import AbstractContractDecoder, ContractDecoder
from registry_indexer.decoders.identity import IdentityDecoder
from registry_indexer.decoders.job_board import JobBoardDecoder
from registry_indexer.decoders.reputation import ReputationDecoder
from registry_indexer.decoders.validation import ValidationDecoder


@dataclass(frozen=True)
class ContractBinding:
    """A decoder paired with the contract address whose logs it reads."""

    address: str
    decoder: ContractDecoder


def build_decoders(deployments: Deployments, source: EventSource) -> List[ContractBinding]:
    """
    Bind one decoder per deployed contract, in sync order.

    The job board is omitted when the deployment has no escrow address.
    """
    bindings = [
        ContractBinding(
            deployments.identity_registry.lower(),
            IdentityDecoder(source, deployments.identity_registry.lower()),
        ),
        ContractBinding(deployments.reputation_registry.lower(), ReputationDecoder()),
        ContractBinding(deployments.validation_registry.lower(), ValidationDecoder()),
    ]
    if deployments.job_board_escrow:
        bindings.append(ContractBinding(deployments.job_board_escrow.lower(), JobBoardDecoder()))
    return bindings


__all__ = [
    # Abstracts
    "AbstractContractDecoder",
    "ContractDecoder",
    # Concrete decoders
    "IdentityDecoder",
    "JobBoardDecoder",
    "ReputationDecoder",
    "ValidationDecoder",
    # Wiring
    "ContractBinding",
    "build_decoders",
]
