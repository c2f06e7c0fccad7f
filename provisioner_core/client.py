"""
provisioner_core.client
-----------------------
ResilientNodeClient keeps one identity connected to a healthy chain node out of
a fixed candidate list.

States:
- Selecting: first healthy node from index 0 wins; none -> NoHealthyNodeError.
- Ready: a ChainSession bound to (current node, chain id).
- Rotating: after a failed operation, probe the following nodes circularly.
- Starved: every node unhealthy; back off min(1s * 2^n, 10s) and rotate again,
  with no upper bound on the number of cycles.

Retried operations must be safe to re-issue. A submission that timed out may
still have been broadcast, so callers are responsible for making their actions
idempotent (or tolerant of the chain's duplicate-transaction rejection).

One client per identity; instances are not thread-safe.
"""

from __future__ import annotations
from typing import Callable, Optional, Sequence, Tuple, Type, TypeVar
import time

from provisioner_core.errors import ClientNotInitializedError, NoHealthyNodeError
from provisioner_core.health import NodeHealth, NodeHealthMonitor
from provisioner_core.logger import get_logger
from provisioner_core.transport import session_factory as http_session_factory
from provisioner_core.transport.session import ChainSession
from provisioner_core.transport.transport_base import TransactionSigner, TransportError

log = get_logger("PROV.Client")

T = TypeVar("T")
SessionFactory = Callable[[str, str], ChainSession]


class ResilientNodeClient:
    def __init__(
        self,
        account_name: str,
        nodes: Sequence[str],
        session_factory: Optional[SessionFactory] = None,
        monitor: Optional[NodeHealthMonitor] = None,
        signer: Optional[TransactionSigner] = None,
        max_retries: int = 3,
        retry_delay: float = 1.0,
        starvation_delay: float = 1.0,
        max_starvation_delay: float = 10.0,
        retry_on: Tuple[Type[BaseException], ...] = (TransportError,),
        sleep: Callable[[float], None] = time.sleep,
    ):
        if not nodes:
            raise ValueError("At least one node URL is required")
        self.account_name = account_name
        self.nodes: Tuple[str, ...] = tuple(n.rstrip("/") for n in nodes)
        self.session_factory = session_factory or http_session_factory(account_name, "active", signer)
        self.monitor = monitor or NodeHealthMonitor()
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.starvation_delay = starvation_delay
        self.max_starvation_delay = max_starvation_delay
        self.retry_on = retry_on
        self.sleep = sleep

        self.current_index = 0
        self.chain_id: Optional[str] = None
        self.session: Optional[ChainSession] = None

    @classmethod
    def from_config(cls, config, account_name: str, signer: Optional[TransactionSigner] = None, **overrides):
        kwargs = dict(
            monitor=NodeHealthMonitor(timeout=config.health_timeout, max_clock_skew_ms=config.max_clock_skew_ms),
            signer=signer,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay,
            max_starvation_delay=config.max_starvation_delay,
        )
        kwargs.update(overrides)
        return cls(account_name, config.rpc_urls, **kwargs)

    @property
    def current_node(self) -> str:
        return self.nodes[self.current_index]

    @property
    def ready(self) -> bool:
        return self.session is not None

    # ------------------------------------------------------------------
    # Node selection
    # ------------------------------------------------------------------
    def initialize(self) -> "ResilientNodeClient":
        """Bind to the first healthy node. No retries here; callers decide."""
        for index, url in enumerate(self.nodes):
            health = self.monitor.check(url)
            if health.healthy:
                self.current_index = index
                self._bind(health)
                log.info(f"[CLIENT] {self.account_name} using node {url} (chain {self.chain_id})")
                return self
        raise NoHealthyNodeError(f"No healthy node available among {len(self.nodes)} candidates")

    def switch_node(self) -> bool:
        """
        Probe the nodes after the current one, wrapping around and ending on
        the current node itself. Returns False when a full circle finds none.
        """
        count = len(self.nodes)
        for step in range(1, count + 1):
            index = (self.current_index + step) % count
            health = self.monitor.check(self.nodes[index])
            if not health.healthy:
                continue
            if self.chain_id is not None and health.chain_id != self.chain_id:
                log.warning(
                    f"[CLIENT] skipping {health.url}: chain {health.chain_id} != pinned {self.chain_id}"
                )
                continue
            self.current_index = index
            self._bind(health)
            log.info(f"[CLIENT] switched to node {health.url}")
            return True
        return False

    def _bind(self, health: NodeHealth) -> None:
        # chain id only ever comes from a node that just passed its health check
        self.chain_id = health.chain_id
        if self.session is not None:
            self.session.close()
        self.session = self.session_factory(health.url, self.chain_id)

    def _rotate(self) -> None:
        """Rotating -> Ready, passing through Starved as long as it takes."""
        starved = 0
        while not self.switch_node():
            delay = min(self.starvation_delay * (2 ** starved), self.max_starvation_delay)
            log.warning(f"[CLIENT] All nodes are unavailable. Sleeping for {delay:g} seconds.")
            self.sleep(delay)
            starved += 1

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------
    def with_retry(self, operation: Callable[[ChainSession], T]) -> T:
        """
        Run ``operation(session)``; on a retryable failure back off
        retry_delay * 2^attempt, rotate to a healthy node and run it again.
        After ``max_retries`` retries the last error propagates unchanged.
        """
        if self.session is None:
            raise ClientNotInitializedError("initialize() must succeed before issuing operations")

        attempt = 0
        while True:
            try:
                return operation(self.session)
            except self.retry_on as e:
                if attempt >= self.max_retries:
                    log.error(f"[RETRY] giving up after {attempt} retries: {e}")
                    raise
                delay = self.retry_delay * (2 ** attempt)
                log.warning(f"[RETRY] Operation failed ({e}), retrying in {delay:g}s...")
                self.sleep(delay)
                self._rotate()
                attempt += 1

    def close(self) -> None:
        if self.session is not None:
            self.session.close()
            self.session = None

    def __enter__(self):
        return self.initialize()

    def __exit__(self, exc_type, exc, tb):
        self.close()
