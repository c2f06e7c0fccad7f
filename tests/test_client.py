import pytest

from conftest import FakeMonitor, SleepRecorder
from provisioner_core.client import ResilientNodeClient
from provisioner_core.config import ProvisionerConfig
from provisioner_core.errors import ClientNotInitializedError, NoHealthyNodeError
from provisioner_core.transport.transport_base import TransportTransientError

A, B, C = "http://a", "http://b", "http://c"


def make_client(chain, monitor, sleep, **kwargs):
    return ResilientNodeClient(
        "valid1.sat", [A, B, C], session_factory=chain.session, monitor=monitor, sleep=sleep, **kwargs
    )


def test_selects_first_healthy_node_without_probing_the_rest(chain, sleeper):
    monitor = FakeMonitor({A: False, B: True, C: True})
    client = make_client(chain, monitor, sleeper).initialize()
    assert client.current_node == B
    assert client.chain_id == "chain-a"
    assert monitor.calls == [A, B]
    assert chain.sessions[-1].url == B
    assert chain.sessions[-1].chain_id == "chain-a"


def test_no_healthy_node_fails_initialization(chain, sleeper):
    monitor = FakeMonitor({A: False, B: False, C: False})
    with pytest.raises(NoHealthyNodeError):
        make_client(chain, monitor, sleeper).initialize()
    assert monitor.calls == [A, B, C]
    assert sleeper.delays == []


def test_operations_require_initialization(chain, sleeper):
    client = make_client(chain, FakeMonitor({A: True}), sleeper)
    with pytest.raises(ClientNotInitializedError):
        client.with_retry(lambda s: s.transact([]))


def test_rotates_away_from_failed_node(chain, sleeper):
    monitor = FakeMonitor({A: False, B: True, C: True})
    client = make_client(chain, monitor, sleeper).initialize()

    monitor.healthy.update({A: True, B: False})
    chain.failures[B] = 1
    result = client.with_retry(lambda s: s.transact([{"name": "noop"}]))

    assert result["transaction_id"] == "tx-1"
    assert client.current_node == C
    assert chain.calls == [B, C]
    assert sleeper.delays == [1.0]
    assert chain.sessions[0].closed


def test_rotation_wraps_around(chain, sleeper):
    monitor = FakeMonitor({A: False, B: False, C: True})
    client = make_client(chain, monitor, sleeper).initialize()
    assert client.current_node == C

    monitor.healthy.update({A: True, C: False})
    chain.failures[C] = 1
    client.with_retry(lambda s: s.transact([]))
    assert client.current_node == A


def test_retries_exhausted_then_last_error(chain, sleeper):
    monitor = FakeMonitor({A: True, B: True, C: True})
    client = make_client(chain, monitor, sleeper).initialize()
    chain.failures.update({A: 10, B: 10, C: 10})

    with pytest.raises(TransportTransientError, match="timed out"):
        client.with_retry(lambda s: s.transact([]))
    # one try plus three retries, exponential spacing
    assert len(chain.calls) == 4
    assert sleeper.delays == [1.0, 2.0, 4.0]


def test_non_transport_errors_are_not_retried(chain, sleeper):
    client = make_client(chain, FakeMonitor({A: True}), sleeper).initialize()

    def broken(session):
        raise KeyError("bug")

    with pytest.raises(KeyError):
        client.with_retry(broken)
    assert sleeper.delays == []


def test_starvation_backs_off_until_a_node_recovers(chain):
    monitor = FakeMonitor({A: True, B: True, C: True})

    def recover(n_sleeps):
        # first sleep is the retry delay, the next three are starvation cycles
        if n_sleeps == 4:
            monitor.healthy[B] = True

    sleeper = SleepRecorder(on_sleep=recover)
    client = make_client(chain, monitor, sleeper).initialize()
    monitor.healthy.update({A: False, B: False, C: False})
    chain.failures[A] = 1

    result = client.with_retry(lambda s: s.transact([]))
    assert result["transaction_id"] == "tx-1"
    assert client.current_node == B
    assert sleeper.delays == [1.0, 1.0, 2.0, 4.0]


def test_starvation_delay_is_capped(chain):
    monitor = FakeMonitor({A: True})

    def recover(n_sleeps):
        if n_sleeps == 7:
            monitor.healthy[A] = True

    sleeper = SleepRecorder(on_sleep=recover)
    client = make_client(chain, monitor, sleeper).initialize()
    monitor.healthy[A] = False
    chain.failures[A] = 1

    client.with_retry(lambda s: s.transact([]))
    assert sleeper.delays == [1.0, 1.0, 2.0, 4.0, 8.0, 10.0, 10.0]


def test_rotation_skips_nodes_on_another_chain(chain, sleeper):
    monitor = FakeMonitor({A: True, B: True, C: True})
    monitor.chain_ids[B] = "chain-b"
    client = make_client(chain, monitor, sleeper).initialize()
    chain.failures[A] = 1

    client.with_retry(lambda s: s.transact([]))
    assert client.current_node == C
    assert client.chain_id == "chain-a"


def test_failed_health_check_keeps_chain_id(chain):
    monitor = FakeMonitor({A: True, B: False, C: False})
    calls = []

    def recover(n_sleeps):
        calls.append(client.chain_id)
        if n_sleeps == 2:
            monitor.healthy[A] = True

    sleeper = SleepRecorder(on_sleep=recover)
    client = make_client(chain, monitor, sleeper).initialize()
    monitor.healthy[A] = False
    chain.failures[A] = 1
    client.with_retry(lambda s: s.transact([]))
    assert calls == ["chain-a", "chain-a"]


def test_from_config(chain, sleeper):
    cfg = ProvisionerConfig(rpc_urls=[A + "/", B], max_retries=1, retry_delay=0.5)
    client = ResilientNodeClient.from_config(
        cfg, "valid1.sat", session_factory=chain.session, monitor=FakeMonitor({A: True}), sleep=sleeper
    )
    assert client.nodes == (A, B)
    assert client.max_retries == 1
    assert client.retry_delay == 0.5


def test_context_manager_closes_session(chain, sleeper):
    with make_client(chain, FakeMonitor({A: True}), sleeper) as client:
        assert client.ready
    assert not client.ready
    assert chain.sessions[0].closed
