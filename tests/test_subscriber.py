import pytest

from lura.sd.subscriber import (
    Backend,
    FixedSubscriber,
    Subscriber,
    SubscriberFunc,
    fixed_subscriber_factory,
)


def test_fixed_subscriber_returns_its_hosts():
    hosts = ["a", "b", "c"]
    assert FixedSubscriber(hosts).hosts() == hosts


def test_fixed_subscriber_returns_a_copy():
    subscriber = FixedSubscriber(["a"])
    returned = subscriber.hosts()
    returned.append("b")
    assert subscriber.hosts() == ["a"]


def test_subscriber_func_calls_the_function():
    subscriber = SubscriberFunc(lambda: ["one", "two"])
    assert subscriber.hosts() == ["one", "two"]


def test_subscriber_func_propagates_errors():
    def failing():
        raise RuntimeError("supu")

    with pytest.raises(RuntimeError, match="supu"):
        SubscriberFunc(failing).hosts()


def test_fixed_subscriber_factory_uses_backend_hosts():
    subscriber = fixed_subscriber_factory(Backend(host=["name", "other"]))
    assert isinstance(subscriber, FixedSubscriber)
    assert subscriber.hosts() == ["name", "other"]


def test_fixed_subscriber_factory_empty_backend():
    assert fixed_subscriber_factory(Backend()).hosts() == []


def test_subscriber_is_abstract():
    with pytest.raises(TypeError):
        Subscriber()