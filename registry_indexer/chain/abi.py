"""
Minimal Solidity ABI support for event logs and single-word view calls.

Only the types the registry contracts emit are handled: `uintN`, `intN`,
`address`, `bool`, `bytes32` and `string`. Declarations use the human-readable
form, e.g.

    EventAbi.parse("Registered(uint256 indexed agentId,address indexed owner,string agentURI)")

Topic hashes and function selectors are keccak-256 of the canonical signature.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Sequence, Tuple

from Crypto.Hash import keccak

from registry_indexer.errors import AbiDecodeError

WORD = 32
_DECLARATION = re.compile(r"^\s*(?P<name>\w+)\s*\((?P<params>.*)\)\s*$")
_INT_TYPE = re.compile(r"^(?P<unsigned>u?)int(?P<bits>\d*)$")


def keccak_hex(text: str) -> str:
    """Keccak-256 (pre-NIST SHA-3, as used by the EVM) of a UTF-8 string, 0x-hex."""
    digest = keccak.new(digest_bits=256)
    digest.update(text.encode("utf-8"))
    return "0x" + digest.hexdigest()


@lru_cache(maxsize=None)
def event_topic(signature: str) -> str:
    return keccak_hex(signature)


@lru_cache(maxsize=None)
def function_selector(signature: str) -> str:
    """First four bytes of the signature hash, 0x-prefixed (e.g. 0x70a08231)."""
    return keccak_hex(signature)[:10]


@dataclass(frozen=True)
class AbiParam:
    name: str
    type: str
    indexed: bool = False

    @property
    def dynamic(self) -> bool:
        return self.type == "string"


@dataclass(frozen=True)
class EventAbi:
    name: str
    params: Tuple[AbiParam, ...]

    @classmethod
    def parse(cls, declaration: str) -> "EventAbi":
        match = _DECLARATION.match(declaration)
        if not match:
            raise ValueError(f"Malformed event declaration: {declaration!r}")
        params = []
        for chunk in filter(None, (part.strip() for part in match["params"].split(","))):
            tokens = chunk.split()
            if len(tokens) == 3 and tokens[1] == "indexed":
                params.append(AbiParam(name=tokens[2], type=tokens[0], indexed=True))
            elif len(tokens) == 2:
                params.append(AbiParam(name=tokens[1], type=tokens[0]))
            else:
                raise ValueError(f"Malformed parameter {chunk!r} in {declaration!r}")
        for param in params:
            _check_type(param.type)
        return cls(name=match["name"], params=tuple(params))

    @property
    def signature(self) -> str:
        return f"{self.name}({','.join(p.type for p in self.params)})"

    @property
    def topic(self) -> str:
        return event_topic(self.signature)

    @property
    def indexed(self) -> Tuple[AbiParam, ...]:
        return tuple(p for p in self.params if p.indexed)

    @property
    def non_indexed(self) -> Tuple[AbiParam, ...]:
        return tuple(p for p in self.params if not p.indexed)


def _check_type(abi_type: str) -> None:
    if abi_type in ("address", "bool", "bytes32", "string"):
        return
    match = _INT_TYPE.match(abi_type)
    if match:
        bits = int(match["bits"] or 256)
        if bits % 8 == 0 and 8 <= bits <= 256:
            return
    raise ValueError(f"Unsupported ABI type {abi_type!r}")


def hex_to_bytes(value: str) -> bytes:
    text = value[2:] if value.startswith(("0x", "0X")) else value
    try:
        return bytes.fromhex(text)
    except ValueError as exc:
        raise AbiDecodeError(f"Invalid hex payload: {value[:20]!r}...") from exc


def decode_word(abi_type: str, word: bytes) -> Any:
    """Decode one 32-byte ABI word holding a static value."""
    if len(word) != WORD:
        raise AbiDecodeError(f"Expected a 32-byte word for {abi_type}, got {len(word)} bytes")
    if abi_type == "address":
        if any(word[:12]):
            raise AbiDecodeError("Address word has non-zero padding")
        return "0x" + word[12:].hex()
    if abi_type == "bytes32":
        return "0x" + word.hex()
    if abi_type == "bool":
        value = int.from_bytes(word, "big")
        if value > 1:
            raise AbiDecodeError(f"Invalid bool word {value}")
        return bool(value)
    match = _INT_TYPE.match(abi_type)
    if not match:
        raise AbiDecodeError(f"Cannot decode {abi_type!r} from a single word")
    bits = int(match["bits"] or 256)
    if match["unsigned"]:
        value = int.from_bytes(word, "big")
        if value >= 1 << bits:
            raise AbiDecodeError(f"{value} overflows {abi_type}")
        return value
    value = int.from_bytes(word, "big", signed=True)
    if not -(1 << (bits - 1)) <= value < 1 << (bits - 1):
        raise AbiDecodeError(f"{value} overflows {abi_type}")
    return value


def _decode_string(body: bytes, offset: int) -> str:
    if offset + WORD > len(body):
        raise AbiDecodeError(f"String offset {offset} past end of data ({len(body)} bytes)")
    length = int.from_bytes(body[offset : offset + WORD], "big")
    start = offset + WORD
    if start + length > len(body):
        raise AbiDecodeError(f"String of length {length} at {offset} past end of data")
    try:
        return body[start : start + length].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise AbiDecodeError("String is not valid UTF-8") from exc


def decode_log(abi: EventAbi, topics: Sequence[str], data: str) -> Dict[str, Any]:
    """
    Decode a log's topics and data into a name -> value mapping.

    Raises
    ------
    AbiDecodeError
        If the topic count or the payload does not fit the event layout.
    """
    indexed = abi.indexed
    if len(topics) != len(indexed) + 1:
        raise AbiDecodeError(
            f"{abi.name}: expected {len(indexed) + 1} topics, got {len(topics)}"
        )
    values: Dict[str, Any] = {}
    for param, topic in zip(indexed, topics[1:]):
        values[param.name] = decode_word(param.type, hex_to_bytes(topic))

    body = hex_to_bytes(data)
    non_indexed = abi.non_indexed
    if len(body) < WORD * len(non_indexed):
        raise AbiDecodeError(
            f"{abi.name}: data holds {len(body)} bytes, head alone needs {WORD * len(non_indexed)}"
        )
    for slot, param in enumerate(non_indexed):
        word = body[slot * WORD : (slot + 1) * WORD]
        if param.dynamic:
            values[param.name] = _decode_string(body, int.from_bytes(word, "big"))
        else:
            values[param.name] = decode_word(param.type, word)
    return values


def encode_uint256_call(signature: str, value: int) -> str:
    """Calldata for a view function taking a single uint256 argument."""
    return function_selector(signature) + f"{value:064x}"


__all__ = [
    "AbiParam",
    "EventAbi",
    "decode_log",
    "decode_word",
    "encode_uint256_call",
    "event_topic",
    "function_selector",
    "hex_to_bytes",
    "keccak_hex",
]
