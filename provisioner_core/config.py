# provisioner_core/config.py
"""
provisioner_core.config
-----------------------
Process-wide settings, built once at start-up and handed explicitly to the
keystore store and the node client. Nothing in the package reads the
environment on its own.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Mapping, Optional
import json, os
from urllib.parse import urlparse


@dataclass
class ProvisionerConfig:
    """Provisioner configuration"""
    keystore_path: str = "./keystore_files"
    keystore_password: Optional[str] = None
    rpc_urls: List[str] = field(default_factory=list)
    reward_address: str = ""

    # account enumeration
    account_prefix: str = "valid"
    account_suffix: str = ".sat"
    total: int = 10
    valid_chars: str = "12345abcdefghijklmnopqrstuvwxyz"

    # logging
    log_dir: str = "logs"
    log_level: str = "INFO"

    # node client
    health_timeout: float = 3.0
    max_clock_skew_ms: int = 300_000
    max_retries: int = 3
    retry_delay: float = 1.0
    max_starvation_delay: float = 10.0

    # transactions
    expire_seconds: int = 30
    resource_payer: str = "res.xsat"
    resource_permission: str = "res"
    endorse_contract: str = "endrmng.xsat"

    def __post_init__(self):
        if isinstance(self.rpc_urls, str):
            self.rpc_urls = _parse_urls(self.rpc_urls, "rpc_urls")
        self.rpc_urls = [u.rstrip("/") for u in self.rpc_urls]

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ProvisionerConfig":
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            keystore_path=env.get("KEYSTORE_PATH", defaults.keystore_path),
            keystore_password=env.get("KEYSTORE_PASSWORD", defaults.keystore_password),
            rpc_urls=_parse_urls(env.get("EXSAT_RPC_URLS", ""), "EXSAT_RPC_URLS"),
            reward_address=env.get("STAKER_REWARD_ADDRESS", defaults.reward_address),
            account_prefix=env.get("ACCOUNT_PREFIX", defaults.account_prefix),
            account_suffix=env.get("ACCOUNT_SUFFIX", defaults.account_suffix),
            total=_int(env, "TOTAL", defaults.total),
            valid_chars=env.get("VALID_CHARS", defaults.valid_chars),
            log_dir=env.get("LOGGER_DIR", defaults.log_dir),
            log_level=env.get("LOG_LEVEL", defaults.log_level),
        )


def _int(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{key} must be an integer, got {raw!r}")


def _parse_urls(raw: str, key: str) -> List[str]:
    raw = raw.strip()
    if not raw:
        return []
    # a JSON array, or a bare URL for single-node deployments
    if not raw.startswith("["):
        if urlparse(raw).scheme not in ("http", "https"):
            raise ValueError(f"{key} must be a JSON array of URLs or a single http(s) URL, got {raw!r}")
        return [raw]
    try:
        urls = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"{key} is not valid JSON: {e}")
    if not isinstance(urls, list) or not all(isinstance(u, str) for u in urls):
        raise ValueError(f"{key} must be a JSON array of URLs")
    for url in urls:
        if urlparse(url).scheme not in ("http", "https"):
            raise ValueError(f"{key} contains a non-http(s) URL: {url!r}")
    return urls
