"""
provisioner_core.utils
----------------------
Lightweight helpers for UUID generation, chain timestamps, hex conversion and log truncation.
Shared by the keystore codec, the RPC session and the submitter.
"""

from __future__ import annotations
import uuid
from datetime import datetime, timezone


def new_id() -> str:
    return str(uuid.uuid4())

def strip_0x(s: str) -> str:
    return s[2:] if s[:2] in ("0x", "0X") else s

def to_hex(b: bytes) -> str:
    # keystore fields are stored without the 0x prefix
    return b.hex()

def from_hex(s: str) -> bytes:
    return bytes.fromhex(strip_0x(s))

def truncate(s: str, limit: int = 500) -> str:
    return s if len(s) <= limit else s[:limit] + "..."

def parse_chain_time(value: str) -> datetime:
    """
    Parse a node timestamp such as ``2024-05-01T12:00:00.500``.

    Nodes report head-of-chain time in UTC without an offset suffix, so a naive
    value is pinned to UTC instead of being read as local time.
    """
    if not isinstance(value, str):
        raise ValueError(f"chain time must be a string, got {type(value).__name__}")
    dt =datetime.fromisoformat(value.rstrip("Z"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt

def format_chain_time(dt: datetime) -> str:
    return dt.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S")

def utc_now() -> datetime:
    return datetime.now(timezone.utc)
