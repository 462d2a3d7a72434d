from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def run_id() -> str:
    """Directory-safe UTC timestamp naming one pipeline run."""
    return utc_now().strftime("%Y%m%d-%H%M%S")


def iso_timestamp() -> str:
    return utc_now().isoformat(timespec="seconds")
