"""Contract event definitions loaded from a JSON ABI or build artifact."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable

from eth_utils import keccak

from event_pinner.errors import ConfigurationError
from event_pinner.models.events import EventDefinition, EventInput

log = logging.getLogger(__name__)


def canonical_signature(name: str, inputs: Iterable[EventInput]) -> str:
    """``Name(type1,type2)`` as hashed for topic0."""
    return f"{name}({','.join(i.type for i in inputs)})"


def event_topic(name: str, inputs: Iterable[EventInput]) -> str:
    return "0x" + keccak(text=canonical_signature(name, inputs)).hex()


def parse_abi(abi: list[dict[str, Any]]) -> list[EventDefinition]:
    """Extract non-anonymous event definitions from ABI entries."""
    definitions: list[EventDefinition] = []
    for entry in abi:
        if entry.get("type") != "event" or entry.get("anonymous"):
            continue
        inputs = tuple(
            EventInput(
                name=raw.get("name") or f"arg{idx}",
                type=raw["type"],
                indexed=bool(raw.get("indexed", False)),
            )
            for idx, raw in enumerate(entry.get("inputs", []))
        )
        definitions.append(EventDefinition(
            name=entry["name"],
            signature=event_topic(entry["name"], inputs),
            inputs=inputs,
        ))
    return definitions


def load_event_definitions(abi_path: str | Path) -> list[EventDefinition]:
    """Load events from a plain ABI list or a Truffle/Hardhat artifact with an "abi" key."""
    p = Path(abi_path).expanduser()
    if not p.exists():
        raise ConfigurationError(f"ABI file not found: {p}")
    with open(p) as f:
        data = json.load(f)
    abi = data.get("abi", []) if isinstance(data, dict) else data
    if not isinstance(abi, list):
        raise ConfigurationError(f"no ABI list in {p}")
    definitions = parse_abi(abi)
    log.debug("Loaded %d event definitions from %s", len(definitions), p)
    return definitions


def find_event(definitions: Iterable[EventDefinition], event_name: str) -> EventDefinition:
    """Look up an event by name, case-insensitively."""
    wanted = event_name.lower()
    for definition in definitions:
        if definition.name.lower() == wanted:
            return definition
    raise ConfigurationError(f"unknown event type: {event_name!r}")
