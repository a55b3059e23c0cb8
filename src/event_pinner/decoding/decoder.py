"""Event decoder - raw log entries to canonical EventRecords."""

from __future__ import annotations

import logging

from event_pinner.decoding.multihash import normalize_hash
from event_pinner.errors import ConfigurationError
from event_pinner.models.config import EventTypeConfig
from event_pinner.models.events import EventDefinition, EventRecord, FieldLayout, RawLogEntry

log = logging.getLogger(__name__)

# args[0] holds the signature topic
_ARGS_OFFSET = 1


def resolve_layout(definition: EventDefinition, event_type: EventTypeConfig) -> FieldLayout:
    """Resolve the configured hash field names to argument positions.

    Raises ConfigurationError when a named field is not an input of the event.
    """
    names = [inp.name for inp in definition.encoding_order()]

    if event_type.new_hash_field not in names:
        raise ConfigurationError(
            f"event {definition.name!r} has no input named "
            f"{event_type.new_hash_field!r} (inputs: {', '.join(names) or 'none'})"
        )
    old_index: int | None = None
    if event_type.old_hash_field:
        if event_type.old_hash_field not in names:
            raise ConfigurationError(
                f"event {definition.name!r} has no input named "
                f"{event_type.old_hash_field!r} (inputs: {', '.join(names) or 'none'})"
            )
        old_index = names.index(event_type.old_hash_field) + _ARGS_OFFSET

    return FieldLayout(
        event_name=definition.name,
        signature=definition.signature.lower(),
        new_hash_field=event_type.new_hash_field,
        new_hash_index=names.index(event_type.new_hash_field) + _ARGS_OFFSET,
        old_hash_field=event_type.old_hash_field,
        old_hash_index=old_index,
        arg_names=names,
    )


class EventDecoder:
    """Pure transform from RawLogEntry to EventRecord for one event type."""

    def __init__(self, layout: FieldLayout) -> None:
        self._layout = layout

    @classmethod
    def for_event_type(
        cls, definition: EventDefinition, event_type: EventTypeConfig,
    ) -> EventDecoder:
        return cls(resolve_layout(definition, event_type))

    @property
    def layout(self) -> FieldLayout:
        return self._layout

    def decode(self, raw: RawLogEntry) -> EventRecord:
        """Decode one entry. Raises HashFormatError on a malformed hash value."""
        args = tuple(raw.args)
        return EventRecord(
            contract_address=raw.address.lower(),
            signature=raw.signature.lower(),
            args=args,
            block_number=raw.block_number,
            tx_index=raw.tx_index,
            log_index=raw.log_index,
            removed=raw.removed,
            new_hash=normalize_hash(self._layout.new_hash_value(args)),
            old_hash=normalize_hash(self._layout.old_hash_value(args)),
            data_index_start=raw.data_index_start,
        )
