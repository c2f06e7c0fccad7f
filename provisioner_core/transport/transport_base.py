from __future__ import annotations
from typing import Any, Dict, List, Optional

from provisioner_core.errors import SignerNotConfiguredError


class TransportError(Exception):
    pass


class TransportTransientError(TransportError):
    """Connection refused, timeout, reset: the node may recover."""
    pass


class TransportPermanentError(TransportError):
    """The node answered, but with an error."""

    def __init__(self, message: str, status: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status = status
        self.body = body


class BaseRpcTransport:
    """
    Chain RPC contract (node HTTP API).

    Only the fields the provisioner interprets are documented here; request and
    response bodies otherwise pass through untouched.
    """
    name: str = "base"

    def get_info(self) -> Dict[str, Any]:
        """chain_id, head_block_time, last_irreversible_block_num/id, ..."""
        raise NotImplementedError

    def get_table_rows(self, **params) -> Dict[str, Any]:
        """rows, more, next_key"""
        raise NotImplementedError

    def get_account(self, name: str) -> Optional[Dict[str, Any]]:
        raise NotImplementedError

    def push_transaction(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def close(self) -> None:
        return


class TransactionSigner:
    """
    Turns an unsigned transaction into the body of a push_transaction call.

    ABI serialization and K1 signatures belong to the chain client library the
    deployment plugs in here.
    """

    def sign(self, chain_id: str, transaction: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError


class UnconfiguredSigner(TransactionSigner):
    def sign(self, chain_id: str, transaction: Dict[str, Any]) -> Dict[str, Any]:
        raise SignerNotConfiguredError("No transaction signer configured; reads only")


Actions = List[Dict[str, Any]]
