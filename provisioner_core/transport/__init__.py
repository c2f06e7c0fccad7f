# provisioner_core/transport/__init__.py
from provisioner_core.transport.transport_base import (
    BaseRpcTransport, TransactionSigner, TransportError,
    TransportPermanentError, TransportTransientError,
)
from provisioner_core.transport.transport_http import HTTPRpcAdapter
from provisioner_core.transport.session import ChainSession


def session_factory(actor: str, permission: str = "active", signer=None, timeout: float = 5.0):
    """
    Returns a ``(url, chain_id) -> ChainSession`` callable for the node client.

    Each call builds a fresh HTTP transport for the node being switched to.
    """

    def make(url: str, chain_id: str) -> ChainSession:
        return ChainSession(HTTPRpcAdapter(url, timeout=timeout), chain_id, actor, permission, signer)

    return make


__all__ = [
    "BaseRpcTransport",
    "TransactionSigner",
    "TransportError",
    "TransportPermanentError",
    "TransportTransientError",
    "HTTPRpcAdapter",
    "ChainSession",
    "session_factory",
]
