"""
Chain access for the registry indexer: ABI decoding and the JSON-RPC event source.
"""

from registry_indexer.chain.abi import EventAbi, decode_log, event_topic, function_selector
from registry_indexer.chain.rpc import EventSource, JsonRpcEventSource, RawLog

__all__ = [
    "EventAbi",
    "EventSource",
    "JsonRpcEventSource",
    "RawLog",
    "decode_log",
    "event_topic",
    "function_selector",
]
