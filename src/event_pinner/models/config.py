"""Configuration models for the daemon."""

from __future__ import annotations

from dataclasses import dataclass, field

DEFAULT_SCHEDULE = "*/1 * * * *"


@dataclass
class EventTypeConfig:
    """One class of hash-lifecycle event to reconcile."""

    event_name: str
    new_hash_field: str
    old_hash_field: str | None = None
    schedule: str | None = None  # falls back to DaemonConfig.schedule


@dataclass
class PinningConfig:
    """PinDriver retry and concurrency settings."""

    max_attempts: int = 5
    base_delay: float = 0.5  # seconds, doubled per attempt
    max_delay: float = 30.0
    max_concurrent: int = 8


@dataclass
class DaemonConfig:
    """Complete daemon configuration."""

    # Daemon
    schedule: str = DEFAULT_SCHEDULE  # shared cron expression
    log_level: str = "info"
    cycle_timeout: float = 600.0  # seconds
    shutdown_grace: float = 30.0

    # Contract
    contract_address: str = ""
    abi_path: str = ""

    # IPFS
    kubo_rpc_url: str = "http://127.0.0.1:5001"
    request_timeout: float = 60.0

    # Storage
    db_path: str = "~/.event_pinner/state.db"

    pinning: PinningConfig = field(default_factory=PinningConfig)
    events: list[EventTypeConfig] = field(default_factory=list)

    def schedule_for(self, event_type: EventTypeConfig) -> str:
        return event_type.schedule or self.schedule
