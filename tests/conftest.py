import pytest

from provisioner_core.health import NodeHealth
from provisioner_core.transport.transport_base import TransportTransientError


class FakeMonitor:
    """Health monitor driven by a url -> bool map the test can flip."""

    def __init__(self, healthy, chain_id="chain-a"):
        self.healthy = dict(healthy)
        self.chain_ids = {}
        self.chain_id = chain_id
        self.calls = []

    def check(self, url):
        self.calls.append(url)
        if self.healthy.get(url):
            return NodeHealth(url=url, healthy=True, chain_id=self.chain_ids.get(url, self.chain_id))
        return NodeHealth(url=url, healthy=False, reason="stale")


class FakeSession:
    def __init__(self, chain, url, chain_id):
        self.chain = chain
        self.url = url
        self.chain_id = chain_id
        self.closed = False

    def _maybe_fail(self):
        self.chain.calls.append(self.url)
        if self.chain.failures.get(self.url, 0) > 0:
            self.chain.failures[self.url] -= 1
            raise TransportTransientError(f"{self.url} timed out")

    def transact(self, actions, expire_seconds=30):
        self._maybe_fail()
        self.chain.transactions.append((self.url, actions, expire_seconds))
        return {"transaction_id": f"tx-{len(self.chain.transactions)}", "processed": {}}

    def get_table_rows(self, **params):
        self.chain.table_requests.append((self.url, params))
        self._maybe_fail()
        return self.chain.pages[params.get("lower_bound")]

    def get_account(self, name):
        self._maybe_fail()
        return self.chain.accounts.get(name)

    def close(self):
        self.closed = True


class FakeChain:
    """Stands in for every node's RPC endpoint; failures are counted per url."""

    def __init__(self):
        self.failures = {}
        self.calls = []
        self.transactions = []
        self.table_requests = []
        self.pages = {}
        self.accounts = {}
        self.sessions = []

    def session(self, url, chain_id):
        s = FakeSession(self, url, chain_id)
        self.sessions.append(s)
        return s


class SleepRecorder:
    def __init__(self, on_sleep=None):
        self.delays = []
        self.on_sleep = on_sleep

    def __call__(self, seconds):
        self.delays.append(seconds)
        if self.on_sleep:
            self.on_sleep(len(self.delays))


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def sleeper():
    return SleepRecorder()
