"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
from pathlib import Path

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:
    import tomli as tomllib  # type: ignore[no-redef]

from event_pinner.errors import ConfigurationError
from event_pinner.models.config import DaemonConfig, EventTypeConfig, PinningConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "EVENT_PINNER_",
) -> DaemonConfig:
    """Load daemon configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (EVENT_PINNER_EVENTS, EVENT_PINNER_DB_PATH, etc.)
        2. TOML config file
        3. Defaults from DaemonConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = DaemonConfig()

    # ── Daemon section ─────────────────────────────────────
    daemon = raw.get("daemon", {})
    if v := daemon.get("schedule"):
        cfg.schedule = str(v)
    if v := daemon.get("log_level"):
        cfg.log_level = str(v)
    if v := daemon.get("cycle_timeout"):
        cfg.cycle_timeout = float(v)
    if v := daemon.get("shutdown_grace"):
        cfg.shutdown_grace = float(v)

    # ── Contract section ───────────────────────────────────
    contract = raw.get("contract", {})
    if v := contract.get("address"):
        cfg.contract_address = str(v)
    if v := contract.get("abi_path"):
        cfg.abi_path = str(v)

    # ── IPFS section ───────────────────────────────────────
    ipfs = raw.get("ipfs", {})
    if v := ipfs.get("kubo_rpc_url"):
        cfg.kubo_rpc_url = str(v)
    if v := ipfs.get("request_timeout"):
        cfg.request_timeout = float(v)

    # ── Pinning section ────────────────────────────────────
    pinning = raw.get("pinning", {})
    cfg.pinning = PinningConfig(
        max_attempts=int(pinning.get("max_attempts", 5)),
        base_delay=float(pinning.get("base_delay", 0.5)),
        max_delay=float(pinning.get("max_delay", 30.0)),
        max_concurrent=int(pinning.get("max_concurrent", 8)),
    )

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)

    # ── Event types ────────────────────────────────────────
    for entry in raw.get("events", []):
        try:
            cfg.events.append(EventTypeConfig(
                event_name=str(entry["event_name"]),
                new_hash_field=str(entry["new_hash_field"]),
                old_hash_field=entry.get("old_hash_field") or None,
                schedule=entry.get("schedule") or None,
            ))
        except KeyError as exc:
            raise ConfigurationError(f"[[events]] entry missing {exc}") from exc

    # ── Environment variable overrides (highest priority) ──
    if v := os.environ.get(f"{env_prefix}SCHEDULE"):
        cfg.schedule = v
    if v := os.environ.get(f"{env_prefix}CONTRACT_ADDRESS"):
        cfg.contract_address = v
    if v := os.environ.get(f"{env_prefix}ABI_PATH"):
        cfg.abi_path = v
    if v := os.environ.get(f"{env_prefix}KUBO_RPC_URL"):
        cfg.kubo_rpc_url = v
    if v := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = v
    if v := os.environ.get(f"{env_prefix}LOG_LEVEL"):
        cfg.log_level = v
    if v := os.environ.get(f"{env_prefix}EVENTS"):
        cfg.events = parse_events_env(v)

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())
    if cfg.abi_path:
        cfg.abi_path = str(Path(cfg.abi_path).expanduser())

    return cfg


def parse_events_env(value: str) -> list[EventTypeConfig]:
    """Parse ``name:newField[:oldField]`` entries separated by commas."""
    events: list[EventTypeConfig] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        parts = [p.strip() for p in item.split(":")]
        if len(parts) < 2 or not parts[0] or not parts[1]:
            raise ConfigurationError(f"bad event entry {item!r}, expected name:newField[:oldField]")
        events.append(EventTypeConfig(
            event_name=parts[0],
            new_hash_field=parts[1],
            old_hash_field=parts[2] if len(parts) > 2 and parts[2] else None,
        ))
    return events
