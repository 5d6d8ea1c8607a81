import random
from collections import Counter

import pytest

from lura.sd.balancing import (
    NoHostsError,
    NopBalancer,
    RandomBalancer,
    RoundRobinBalancer,
    new_balancer,
    new_random_lb,
    new_round_robin_lb,
)
from lura.sd.subscriber import Backend, FixedSubscriber, Subscriber, fixed_subscriber_factory

BALANCER_TEST_CASES = [
    ["a"],
    ["a", "b", "c"],
    ["a", "b", "c", "e", "f"],
]


class ErroredSubscriber(Subscriber):
    def __init__(self, message):
        self.message = message

    def hosts(self):
        raise RuntimeError(self.message)


@pytest.mark.parametrize("endpoints", BALANCER_TEST_CASES)
def test_round_robin_lb(endpoints):
    n = len(endpoints)
    iterations = 1000 * n
    want = iterations // n
    balancer = new_round_robin_lb(FixedSubscriber(endpoints))
    counts = Counter()
    for i in range(iterations):
        endpoint = balancer.host()
        assert endpoint == endpoints[i % n]
        counts[endpoint] += 1
    assert set(counts) == set(endpoints)
    assert all(have == want for have in counts.values())


def test_round_robin_lb_no_endpoints():
    balancer = new_round_robin_lb(FixedSubscriber([]))
    with pytest.raises(NoHostsError) as info:
        balancer.host()
    assert str(info.value) == "no hosts available"


def test_random_lb_distribution():
    endpoints = ["a", "b", "c", "d", "e", "f", "g"]
    iterations = 700000
    want = iterations // len(endpoints)
    tolerance = want // 100
    balancer = RandomBalancer(FixedSubscriber(endpoints), rng=random.Random(42))
    counts = Counter(balancer.host() for _ in range(iterations))
    assert set(counts) == set(endpoints)
    for have in counts.values():
        assert abs(want - have) <= tolerance


def test_random_lb_single():
    balancer = new_random_lb(FixedSubscriber(["a"]))
    assert isinstance(balancer, NopBalancer)
    assert all(balancer.host() == "a" for _ in range(1000))


def test_random_lb_no_endpoints():
    balancer = new_random_lb(fixed_subscriber_factory(Backend()))
    with pytest.raises(NoHostsError):
        balancer.host()


def test_round_robin_lb_errored_subscriber():
    balancer = new_round_robin_lb(ErroredSubscriber("supu"))
    with pytest.raises(RuntimeError) as info:
        balancer.host()
    assert str(info.value) == "supu"


def test_random_lb_errored_subscriber():
    balancer = new_random_lb(ErroredSubscriber("supu"))
    with pytest.raises(RuntimeError) as info:
        balancer.host()
    assert str(info.value) == "supu"


def test_round_robin_lb_multiple_hosts_cycles():
    balancer = new_round_robin_lb(FixedSubscriber(["a", "b"]))
    assert isinstance(balancer, RoundRobinBalancer)
    assert [balancer.host() for _ in range(4)] == ["a", "b", "a", "b"]


def test_new_balancer_returns_a_known_host():
    endpoints = ["a", "b", "c"]
    balancer = new_balancer(FixedSubscriber(endpoints))
    assert {balancer.host() for _ in range(300)} <= set(endpoints)