"""
provisioner_core.health
-----------------------
Liveness + freshness probe for a single chain node.

A node is healthy only if get_info answers within the probe timeout AND its
head block time is within ``max_clock_skew_ms`` of local UTC time. A node that
answers with a stale head is as unusable as one that does not answer: it may be
stalled or on a fork.

Probe failures never raise; the reason is kept on the result for logging.
"""

from __future__ import annotations
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional

from provisioner_core.logger import get_logger
from provisioner_core.transport.transport_base import BaseRpcTransport, TransportError
from provisioner_core.transport.transport_http import HTTPRpcAdapter
from provisioner_core.utils import parse_chain_time, utc_now

log = get_logger("PROV.Health")

OK = "ok"
TRANSPORT = "transport"
STALE = "stale"
MALFORMED = "malformed"


@dataclass
class NodeHealth:
    url: str
    healthy: bool
    reason: str = OK
    chain_id: Optional[str] = None
    skew_ms: Optional[int] = None
    detail: str = ""

    def __bool__(self) -> bool:
        return self.healthy


class NodeHealthMonitor:
    def __init__(
        self,
        timeout: float = 3.0,
        max_clock_skew_ms: int = 300_000,
        transport_factory: Optional[Callable[[str, float], BaseRpcTransport]] = None,
        clock: Callable = utc_now,
    ):
        self.timeout = timeout
        self.max_clock_skew_ms = max_clock_skew_ms
        self.transport_factory = transport_factory or (lambda url, timeout: HTTPRpcAdapter(url, timeout=timeout))
        self.clock = clock

    def check(self, url: str) -> NodeHealth:
        transport = self.transport_factory(url, self.timeout)
        try:
            info = transport.get_info()
        except TransportError as e:
            return self._unhealthy(url, TRANSPORT, str(e))
        finally:
            transport.close()

        try:
            chain_id = info["chain_id"]
            head = parse_chain_time(info["head_block_time"])
        except (KeyError, TypeError, ValueError) as e:
            return self._unhealthy(url, MALFORMED, f"bad get_info payload: {e!r}")

        skew = head - self.clock()
        skew_ms = skew // timedelta(milliseconds=1)
        if abs(skew) > timedelta(milliseconds=self.max_clock_skew_ms):
            result = self._unhealthy(url, STALE, f"head block {info['head_block_time']} is {skew_ms}ms off")
            result.skew_ms = skew_ms
            return result

        log.debug(f"[HEALTH] {url} ok chain_id={chain_id} skew={skew_ms}ms")
        return NodeHealth(url=url, healthy=True, chain_id=chain_id, skew_ms=skew_ms)

    def is_healthy(self, url: str) -> bool:
        return self.check(url).healthy

    @staticmethod
    def _unhealthy(url: str, reason: str, detail: str) -> NodeHealth:
        log.error(f"[HEALTH] get_info from rpc failed [{url}] reason={reason}: {detail}")
        return NodeHealth(url=url, healthy=False, reason=reason, detail=detail)
