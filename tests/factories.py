"""Synthetic events and hashes for testing."""

from __future__ import annotations

import hashlib
import os
import random

from event_pinner.contracts import parse_abi
from event_pinner.decoding.multihash import bytes32_to_multihash
from event_pinner.models.config import EventTypeConfig
from event_pinner.models.events import EventDefinition, EventRecord, RawLogEntry

CONTRACT_ADDRESS = "0x5fbdb2315678afecb367f032d93f642f64180aa3"
OWNER = "0x000000000000000000000000f39fd6e51aad88f6f4ce6ab8827279cfffb92266"

# HashUpdated: hashes split across topics and data.
# ProfileUpdated: declared data-first, so encoding order differs from declaration.
TEST_ABI = [
    {
        "type": "event",
        "name": "HashUpdated",
        "anonymous": False,
        "inputs": [
            {"name": "owner", "type": "address", "indexed": True},
            {"name": "newHash", "type": "bytes32", "indexed": True},
            {"name": "oldHash", "type": "bytes32", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "ProfileUpdated",
        "anonymous": False,
        "inputs": [
            {"name": "previous", "type": "bytes32", "indexed": False},
            {"name": "user", "type": "address", "indexed": True},
            {"name": "current", "type": "bytes32", "indexed": False},
        ],
    },
    {"type": "function", "name": "setHash", "inputs": []},
]

DEFINITIONS = parse_abi(TEST_ABI)
HASH_UPDATED: EventDefinition = DEFINITIONS[0]
PROFILE_UPDATED: EventDefinition = DEFINITIONS[1]

HASH_UPDATED_TYPE = EventTypeConfig(
    event_name="hashupdated", new_hash_field="newHash", old_hash_field="oldHash",
)
PROFILE_UPDATED_TYPE = EventTypeConfig(
    event_name="ProfileUpdated", new_hash_field="current", old_hash_field="previous",
)


def random_hash(rng: random.Random | None = None) -> str:
    """A fresh fixed-width hash (sha256 of random bytes)."""
    seed = rng.randbytes(16) if rng else os.urandom(16)
    return "0x" + hashlib.sha256(seed).hexdigest()


def random_multihash(rng: random.Random | None = None) -> str:
    return bytes32_to_multihash(random_hash(rng))


def make_raw_log(
    new_hash: str | None,
    old_hash: str | None = None,
    block_number: int = 1,
    tx_index: int = 0,
    log_index: int = 0,
    removed: bool = False,
    definition: EventDefinition = HASH_UPDATED,
    event_type: EventTypeConfig = HASH_UPDATED_TYPE,
    address: str = CONTRACT_ADDRESS,
) -> RawLogEntry:
    """Build args the way the log store holds them: topic0, indexed inputs, data."""
    args: list[object] = [definition.signature]
    for inp in definition.encoding_order():
        if inp.name == event_type.new_hash_field:
            args.append(new_hash or "0x0")
        elif inp.name == event_type.old_hash_field:
            args.append(old_hash or "0x0")
        elif inp.type == "address":
            args.append(OWNER)
        else:
            args.append("0x0")
    return RawLogEntry(
        address=address,
        signature=definition.signature,
        args=tuple(args),
        block_number=block_number,
        tx_index=tx_index,
        log_index=log_index,
        removed=removed,
        data_index_start=definition.data_index_start,
    )


def make_record(
    new_hash: str | None,
    old_hash: str | None = None,
    block_number: int = 1,
    tx_index: int = 0,
    log_index: int = 0,
    removed: bool = False,
    address: str = CONTRACT_ADDRESS,
    signature: str = HASH_UPDATED.signature,
) -> EventRecord:
    return EventRecord(
        contract_address=address,
        signature=signature,
        args=(),
        block_number=block_number,
        tx_index=tx_index,
        log_index=log_index,
        removed=removed,
        new_hash=new_hash,
        old_hash=old_hash,
    )


def generate_history(
    count: int,
    rng: random.Random,
    supersede_probability: float = 0.5,
    definition: EventDefinition = HASH_UPDATED,
    event_type: EventTypeConfig = HASH_UPDATED_TYPE,
) -> list[RawLogEntry]:
    """Fuzz history: each event announces a fresh hash and, with some
    probability, names a previously generated hash as the one it replaces.
    """
    generated: list[str] = []
    logs: list[RawLogEntry] = []
    for i in range(count):
        new_hash = random_hash(rng)
        old_hash = None
        if generated and rng.random() < supersede_probability:
            old_hash = rng.choice(generated)
        logs.append(make_raw_log(
            new_hash, old_hash, block_number=i, tx_index=i, log_index=0,
            definition=definition, event_type=event_type,
        ))
        generated.append(new_hash)
    return logs


def expected_hashes(records: list[tuple[int, str | None, str | None]]) -> set[str]:
    """Reference fold over (block, new, old) triples, independent of the Reconciler."""
    result: dict[str, int] = {}
    for _, new_hash, old_hash in sorted(records, key=lambda r: r[0]):
        if old_hash:
            result.pop(old_hash, None)
        if new_hash:
            result[new_hash] = 1
    return set(result)
