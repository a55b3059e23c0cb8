"""Contract event models: declared layouts, raw log entries and decoded records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from event_pinner.errors import HashFormatError


@dataclass(frozen=True)
class EventInput:
    """One declared input of a contract event."""

    name: str
    type: str  # ABI type, e.g. "bytes32"
    indexed: bool = False


@dataclass(frozen=True)
class EventDefinition:
    """A contract event as declared in the ABI."""

    name: str
    signature: str  # 0x-prefixed keccak topic of the canonical signature
    inputs: tuple[EventInput, ...] = ()

    def encoding_order(self) -> list[EventInput]:
        """Inputs in on-chain encoding order: indexed first, then data words."""
        indexed = [i for i in self.inputs if i.indexed]
        data = [i for i in self.inputs if not i.indexed]
        return indexed + data

    @property
    def data_index_start(self) -> int:
        """Declaration index of the first non-indexed input, -1 if none."""
        for idx, inp in enumerate(self.inputs):
            if not inp.indexed:
                return idx
        return -1


@dataclass(frozen=True)
class RawLogEntry:
    """A log entry as handed over by the history source.

    ``args[0]`` is the signature topic; the event inputs follow in
    encoding order (see ``EventDefinition.encoding_order``).
    """

    address: str
    signature: str
    args: tuple[Any, ...]
    block_number: int
    tx_index: int
    log_index: int
    removed: bool = False
    data_index_start: int = -1


@dataclass(frozen=True)
class EventRecord:
    """Canonical, immutable decoded event."""

    contract_address: str
    signature: str
    args: tuple[Any, ...]
    block_number: int
    tx_index: int
    log_index: int
    removed: bool
    new_hash: str | None  # fixed-width 0x-prefixed bytes32
    old_hash: str | None
    data_index_start: int = -1

    @property
    def order_key(self) -> tuple[int, int, int]:
        return (self.block_number, self.tx_index, self.log_index)

    @property
    def identity(self) -> tuple[str, str, int, int, int]:
        """Canonical identity shared by a record and its reorg cancellation."""
        return (self.contract_address, self.signature, *self.order_key)


@dataclass
class FieldLayout:
    """Hash field positions for one event type, resolved once at load time."""

    event_name: str
    signature: str
    new_hash_field: str
    new_hash_index: int  # position in RawLogEntry.args
    old_hash_field: str | None = None
    old_hash_index: int | None = None
    arg_names: list[str] = field(default_factory=list)

    def new_hash_value(self, args: tuple[Any, ...]) -> Any:
        return self._arg(args, self.new_hash_field, self.new_hash_index)

    def old_hash_value(self, args: tuple[Any, ...]) -> Any:
        if self.old_hash_index is None:
            return None
        return self._arg(args, self.old_hash_field, self.old_hash_index)

    def _arg(self, args: tuple[Any, ...], name: str | None, index: int) -> Any:
        if index >= len(args):
            raise HashFormatError(
                f"{self.event_name} log has {len(args)} args, "
                f"{name!r} expected at position {index}"
            )
        return args[index]
