"""Tests 11-14: ABI parsing, topic hashing and event lookup."""

from __future__ import annotations

import json

import pytest

from event_pinner.contracts import (
    canonical_signature,
    event_topic,
    find_event,
    load_event_definitions,
    parse_abi,
)
from event_pinner.errors import ConfigurationError
from event_pinner.models.events import EventInput

from tests.factories import DEFINITIONS, TEST_ABI

TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


# ── Test 11: Topic hashing ────────────────────────────────────────


def test_event_topic_matches_known_value():
    inputs = [
        EventInput("from", "address", True),
        EventInput("to", "address", True),
        EventInput("value", "uint256", False),
    ]
    assert canonical_signature("Transfer", inputs) == "Transfer(address,address,uint256)"
    assert event_topic("Transfer", inputs) == TRANSFER_TOPIC


# ── Test 12: parse_abi ────────────────────────────────────────────


def test_parse_abi_keeps_only_named_events():
    abi = TEST_ABI + [
        {"type": "event", "name": "Hidden", "anonymous": True, "inputs": []},
        {
            "type": "event", "name": "Transfer",
            "inputs": [
                {"name": "", "type": "address", "indexed": True},
                {"name": "to", "type": "address", "indexed": True},
                {"name": "value", "type": "uint256"},
            ],
        },
    ]
    definitions = parse_abi(abi)
    assert [d.name for d in definitions] == ["HashUpdated", "ProfileUpdated", "Transfer"]
    transfer = definitions[-1]
    assert transfer.signature == TRANSFER_TOPIC
    assert transfer.inputs[0].name == "arg0"
    assert transfer.inputs[2].indexed is False


# ── Test 13: Loading from disk ────────────────────────────────────


def test_load_plain_abi_and_artifact(tmp_path):
    plain = tmp_path / "abi.json"
    plain.write_text(json.dumps(TEST_ABI))
    artifact = tmp_path / "Registry.json"
    artifact.write_text(json.dumps({"contractName": "Registry", "abi": TEST_ABI}))

    assert load_event_definitions(plain) == DEFINITIONS
    assert load_event_definitions(str(artifact)) == DEFINITIONS


def test_load_missing_file_raises(tmp_path):
    with pytest.raises(ConfigurationError, match="not found"):
        load_event_definitions(tmp_path / "missing.json")


def test_load_artifact_without_list_raises(tmp_path):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"abi": {"type": "event"}}))
    with pytest.raises(ConfigurationError):
        load_event_definitions(bad)


# ── Test 14: find_event ───────────────────────────────────────────


def test_find_event_is_case_insensitive():
    assert find_event(DEFINITIONS, "hashUPDATED").name == "HashUpdated"


def test_find_unknown_event_raises():
    with pytest.raises(ConfigurationError, match="Transfer"):
        find_event(DEFINITIONS, "Transfer")
