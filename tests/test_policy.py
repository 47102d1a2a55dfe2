"""Tests for the built in refresh policies."""

import asyncio
from typing import Any

import pytest

from refreshing_config.exceptions import AlreadySubscribedError, InvalidArgumentError
from refreshing_config.policy import (
    AlwaysRefreshPolicy,
    IntervalRefreshPolicy,
    NeverRefreshPolicy,
    StaleRefreshPolicy,
)
from refreshing_config.tasks import TaskServiceImpl


class FakeClock:
    """Clock advanced manually by the test."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSubscriber:
    """Subscriber counting refresh requests."""

    def __init__(self, fail: bool = False) -> None:
        self.count = 0
        self.fail = fail

    def refresh(self) -> "asyncio.Future[Any]":
        self.count += 1
        if self.fail:
            raise RuntimeError("refresh failed")
        future: asyncio.Future[Any] = asyncio.get_running_loop().create_future()
        future.set_result({})
        return future


async def wait_for_count(subscriber: FakeSubscriber, count: int) -> None:
    """Wait until the subscriber was refreshed at least count times."""
    async with asyncio.timeout(5):
        while subscriber.count < count:
            await asyncio.sleep(0.005)


def test_always_refresh() -> None:
    """Test that AlwaysRefreshPolicy always refreshes."""
    policy = AlwaysRefreshPolicy()
    assert policy.should_refresh()
    assert policy.should_refresh()


def test_never_refresh() -> None:
    """Test that NeverRefreshPolicy never refreshes."""
    policy = NeverRefreshPolicy()
    assert not policy.should_refresh()
    assert not policy.should_refresh()


@pytest.mark.parametrize("duration", [0, -1, -0.5, "10", None, True, [1]])
def test_invalid_duration(duration: Any) -> None:
    """Test that durations must be positive numbers."""
    with pytest.raises(InvalidArgumentError, match="Invalid duration"):
        StaleRefreshPolicy(duration)
    with pytest.raises(InvalidArgumentError, match="Invalid duration"):
        IntervalRefreshPolicy(duration)


def test_stale_refresh() -> None:
    """Test that StaleRefreshPolicy refreshes once the duration has elapsed."""
    clock = FakeClock()
    policy = StaleRefreshPolicy(1, clock=clock)
    assert policy.duration == 1.0

    assert policy.should_refresh()
    assert not policy.should_refresh()

    clock.advance(0.6)
    assert not policy.should_refresh()

    # The baseline is not moved by the declined call above
    clock.advance(0.4)
    assert policy.should_refresh()
    assert not policy.should_refresh()

    clock.advance(5)
    assert policy.should_refresh()


async def test_interval_refresh(task_service: TaskServiceImpl) -> None:
    """Test that the subscriber is refreshed periodically until unsubscribed."""
    policy = IntervalRefreshPolicy(0.01, task_service=task_service)
    subscriber = FakeSubscriber()
    assert not policy.subscribed

    policy.subscribe(subscriber)
    assert policy.subscribed
    await wait_for_count(subscriber, 2)

    policy.unsubscribe()
    assert not policy.subscribed
    count = subscriber.count
    await asyncio.sleep(0.05)
    assert subscriber.count == count


async def test_interval_refresh_survives_failures(
    task_service: TaskServiceImpl,
) -> None:
    """Test that a failing refresh does not stop the ticker."""
    policy = IntervalRefreshPolicy(0.01, task_service=task_service)
    subscriber = FakeSubscriber(fail=True)
    policy.subscribe(subscriber)
    await wait_for_count(subscriber, 3)
    policy.unsubscribe()


async def test_interval_already_subscribed(task_service: TaskServiceImpl) -> None:
    """Test that a policy can only have one subscriber at a time."""
    policy = IntervalRefreshPolicy(60, task_service=task_service)
    policy.subscribe(FakeSubscriber())
    with pytest.raises(AlreadySubscribedError):
        policy.subscribe(FakeSubscriber())

    policy.unsubscribe()
    policy.unsubscribe()
    policy.subscribe(FakeSubscriber())
    policy.unsubscribe()


def test_interval_unsubscribe_without_subscribe() -> None:
    """Test that unsubscribe is safe when never subscribed."""
    policy = IntervalRefreshPolicy(1)
    policy.unsubscribe()
    assert not policy.subscribed
