"""Tests 32-36: SQLite log history, pin state and cycle reports."""

from __future__ import annotations

from dataclasses import replace

import pytest

from event_pinner.decoding.multihash import bytes32_to_multihash
from event_pinner.errors import PinStateStoreError
from event_pinner.models.records import CycleReport, PinRecord
from event_pinner.storage.sqlite import SQLiteStateStore

from tests.factories import (
    CONTRACT_ADDRESS,
    HASH_UPDATED,
    PROFILE_UPDATED,
    PROFILE_UPDATED_TYPE,
    make_raw_log,
    random_hash,
)


def _pin(h: str, signature: str = HASH_UPDATED.signature, block: int | None = 1) -> PinRecord:
    return PinRecord(
        hash=h, multihash=bytes32_to_multihash(h),
        contract_address=CONTRACT_ADDRESS, signature=signature,
        block_number=block, tx_index=0, log_index=0,
    )


# ── Test 32: Log history ──────────────────────────────────────────


async def test_save_log_deduplicates(store):
    raw = make_raw_log(random_hash(), block_number=3)
    assert await store.save_log(raw) is True
    assert await store.save_log(raw) is False
    # the reorg cancellation of the same log is a distinct entry
    assert await store.save_log(replace(raw, removed=True)) is True
    assert await store.count_logs() == 2


async def test_get_logs_filters_and_orders(store):
    late = make_raw_log(random_hash(), block_number=9)
    early = make_raw_log(random_hash(), block_number=2, log_index=4)
    other = make_raw_log(
        random_hash(), definition=PROFILE_UPDATED, event_type=PROFILE_UPDATED_TYPE,
    )
    for raw in (late, other, early):
        await store.save_log(raw)

    logs = await store.get_logs(CONTRACT_ADDRESS.upper().replace("0X", "0x"), HASH_UPDATED.signature)

    assert [log.block_number for log in logs] == [2, 9]
    assert logs[0].args == early.args
    assert logs[0].log_index == 4
    assert logs[0].data_index_start == HASH_UPDATED.data_index_start


async def test_bytes_args_stored_as_hex(store):
    h = random_hash()
    raw = make_raw_log(None)
    raw = replace(raw, args=raw.args[:2] + (bytes.fromhex(h[2:]),) + raw.args[3:])
    await store.save_log(raw)

    [loaded] = await store.get_logs(CONTRACT_ADDRESS, HASH_UPDATED.signature)
    assert loaded.args[2] == h


# ── Test 33: Pin upsert keeps one row per hash and pair ───────────


async def test_upsert_is_idempotent(store):
    h = random_hash()
    await store.upsert_pin(_pin(h, block=1))
    await store.upsert_pin(_pin(h, block=5))

    assert await store.count_by_hash(h) == 1
    pin = await store.get_pin(h)
    assert pin.block_number == 5
    assert pin.pinned_at


async def test_same_hash_held_per_pair(store):
    h = random_hash()
    await store.upsert_pin(_pin(h))
    await store.upsert_pin(_pin(h, signature=PROFILE_UPDATED.signature, block=7))

    assert await store.list_active(CONTRACT_ADDRESS, HASH_UPDATED.signature) == {h}
    assert await store.list_active(CONTRACT_ADDRESS, PROFILE_UPDATED.signature) == {h}
    assert await store.count_by_hash(h) == 1
    assert await store.count_holders(h) == 2
    assert await store.count_pins() == 1
    pin = await store.get_pin(h, CONTRACT_ADDRESS, PROFILE_UPDATED.signature)
    assert pin.block_number == 7

    await store.delete_pin(h, CONTRACT_ADDRESS, HASH_UPDATED.signature)
    assert await store.list_active(CONTRACT_ADDRESS, HASH_UPDATED.signature) == set()
    assert await store.count_holders(h) == 1
    assert await store.count_by_hash(h) == 1


# ── Test 34: Active set per pair ──────────────────────────────────


async def test_list_active_per_pair(store):
    a, b, c = random_hash(), random_hash(), random_hash()
    await store.upsert_pin(_pin(a))
    await store.upsert_pin(_pin(b))
    await store.upsert_pin(_pin(c, signature=PROFILE_UPDATED.signature))

    assert await store.list_active(CONTRACT_ADDRESS, HASH_UPDATED.signature) == {a, b}
    assert await store.count_pins() == 3
    assert {p.hash for p in await store.get_all_pins()} == {a, b, c}


# ── Test 35: Delete ───────────────────────────────────────────────


async def test_delete_pin(store):
    h = random_hash()
    await store.upsert_pin(_pin(h))
    await store.delete_pin(h, CONTRACT_ADDRESS, HASH_UPDATED.signature)
    await store.delete_pin(h, CONTRACT_ADDRESS, HASH_UPDATED.signature)

    assert await store.count_by_hash(h) == 0
    assert await store.get_pin(h) is None


async def test_closed_store_raises_pin_state_error():
    s = SQLiteStateStore(":memory:")
    await s.initialize()
    await s.close()

    with pytest.raises(PinStateStoreError):
        await s.upsert_pin(_pin(random_hash()))
    with pytest.raises(PinStateStoreError):
        await s.list_active(CONTRACT_ADDRESS, HASH_UPDATED.signature)


# ── Test 36: Cycle reports ────────────────────────────────────────


async def test_cycle_history(store):
    for i, name in enumerate(["HashUpdated", "ProfileUpdated", "HashUpdated"]):
        report = CycleReport(
            event_name=name, contract_address=CONTRACT_ADDRESS,
            signature=HASH_UPDATED.signature, started_at="2026-01-01T00:00:00+00:00",
            records_seen=i, desired=i, pinned=i,
            error="boom" if i == 1 else None,
        )
        await store.save_cycle_report(report)
        assert report.cycle_id is not None

    history = await store.get_cycle_history(limit=2)
    assert [r.records_seen for r in history] == [2, 1]
    assert history[1].error == "boom"

    only_hash = await store.get_cycle_history(event_name="HashUpdated")
    assert [r.records_seen for r in only_hash] == [2, 0]
    assert only_hash[0].completed_at
