"""Event decoding and hash representation conversion."""

from event_pinner.decoding.decoder import EventDecoder, resolve_layout
from event_pinner.decoding.multihash import (
    bytes32_to_multihash,
    multihash_to_bytes32,
    normalize_hash,
)

__all__ = [
    "EventDecoder",
    "resolve_layout",
    "bytes32_to_multihash",
    "multihash_to_bytes32",
    "normalize_hash",
]
