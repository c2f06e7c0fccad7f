"""
provisioner_core.transport.session
----------------------------------
ChainSession: a channel bound to one node and one chain id, acting as a single
``actor@permission``. The node client rebuilds it whenever it switches nodes, so
an operation never crosses chains mid-retry.
"""

from __future__ import annotations
from datetime import timedelta
from typing import Any, Dict, Optional

from provisioner_core.logger import get_logger
from provisioner_core.transport.transport_base import (
    Actions, BaseRpcTransport, TransactionSigner, TransportPermanentError, UnconfiguredSigner,
)
from provisioner_core.utils import format_chain_time, parse_chain_time

log = get_logger("PROV.Session")


def ref_block_fields(info: Dict[str, Any]) -> Dict[str, int]:
    """TaPoS reference from the last irreversible block."""
    block_id = bytes.fromhex(info["last_irreversible_block_id"])
    return {
        "ref_block_num": int(info["last_irreversible_block_num"]) & 0xFFFF,
        "ref_block_prefix": int.from_bytes(block_id[8:12], "little"),
    }


class ChainSession:
    def __init__(
        self,
        transport: BaseRpcTransport,
        chain_id: str,
        actor: str,
        permission: str = "active",
        signer: Optional[TransactionSigner] = None,
    ):
        self.transport = transport
        self.chain_id = chain_id
        self.actor = actor
        self.permission = permission
        self.signer = signer or UnconfiguredSigner()

    @property
    def url(self) -> str:
        return getattr(self.transport, "base_url", None) or self.transport.name

    def build_transaction(self, actions: Actions, expire_seconds: int = 30) -> Dict[str, Any]:
        info = self.transport.get_info()
        if info.get("chain_id") != self.chain_id:
            # the node moved under us; let the caller's retry rotate away
            raise TransportPermanentError(
                f"Chain id mismatch at {self.url}: expected {self.chain_id}, got {info.get('chain_id')}"
            )
        expiration = parse_chain_time(info["head_block_time"]) + timedelta(seconds=expire_seconds)
        trx = {
            "expiration": format_chain_time(expiration),
            "max_net_usage_words": 0,
            "max_cpu_usage_ms": 0,
            "delay_sec": 0,
            "context_free_actions": [],
            "actions": actions,
            "transaction_extensions": [],
        }
        trx.update(ref_block_fields(info))
        return trx

    def transact(self, actions: Actions, expire_seconds: int = 30) -> Dict[str, Any]:
        trx = self.build_transaction(actions, expire_seconds)
        payload = self.signer.sign(self.chain_id, trx)
        result = self.transport.push_transaction(payload)
        log.debug(f"[SESSION] pushed {result.get('transaction_id')} via {self.url}")
        return result

    def get_table_rows(self, **params) -> Dict[str, Any]:
        return self.transport.get_table_rows(**params)

    def get_account(self, name: str) -> Optional[Dict[str, Any]]:
        return self.transport.get_account(name)

    def close(self) -> None:
        self.transport.close()
