"""
Unit tests for bootstrap sequencing (store first, then broker).
"""

import asyncio

import psycopg
import pytest

from post_service.bootstrap import Bootstrap
from post_service.errors import BrokerTimeout, BrokerUnavailable, StoreUnavailable

from tests.fakes import FakeBrokerConnection, FakePool, PoolFactory

pytestmark = pytest.mark.timeout(5)


class BrokerConnect:
    """Records calls; returns a fake connection or raises."""

    def __init__(self, error=None, hang=False):
        self.error = error
        self.hang = hang
        self.calls = 0
        self.connection = FakeBrokerConnection()

    async def __call__(self, url):
        self.calls += 1
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return self.connection


@pytest.mark.asyncio
async def test_start_connects_store_then_broker(settings):
    pool = FakePool()
    broker = BrokerConnect()

    service = await Bootstrap(
        settings, pool_factory=PoolFactory([pool]), broker_connect=broker
    ).start()

    assert service.store.pool is pool
    assert service.publisher.available
    assert broker.calls == 1
    assert service.posts.announcing is True

    await service.aclose()
    assert pool.closed
    assert broker.connection.is_closed


@pytest.mark.asyncio
async def test_store_failure_is_fatal_and_broker_untouched(settings):
    pools = [FakePool(open_error=psycopg.OperationalError("refused")) for _ in range(3)]
    broker = BrokerConnect()

    with pytest.raises(StoreUnavailable):
        await Bootstrap(settings, pool_factory=PoolFactory(pools), broker_connect=broker).start()

    assert broker.calls == 0


@pytest.mark.asyncio
async def test_broker_failure_degrades_by_default(settings):
    broker = BrokerConnect(error=ConnectionError("refused"))

    service = await Bootstrap(
        settings, pool_factory=PoolFactory([FakePool()]), broker_connect=broker
    ).start()

    assert service.publisher is not None
    assert service.publisher.available is False
    assert await service.publisher.publish(b"{}") is False


@pytest.mark.asyncio
async def test_broker_timeout_fatal_when_required(settings):
    required = settings.model_copy(
        update={"BROKER_REQUIRED": True, "BROKER_CONNECT_TIMEOUT": 0.05}
    )
    pool = FakePool()

    with pytest.raises(BrokerTimeout):
        await Bootstrap(
            required, pool_factory=PoolFactory([pool]), broker_connect=BrokerConnect(hang=True)
        ).start()

    assert pool.closed


@pytest.mark.asyncio
async def test_broker_error_fatal_when_required(settings):
    required = settings.model_copy(update={"BROKER_REQUIRED": True})

    with pytest.raises(BrokerUnavailable):
        await Bootstrap(
            required,
            pool_factory=PoolFactory([FakePool()]),
            broker_connect=BrokerConnect(error=ConnectionError("refused")),
        ).start()


@pytest.mark.asyncio
async def test_simple_variant_skips_broker(settings):
    simple = settings.model_copy(update={"MESSAGING_ENABLED": False})
    broker = BrokerConnect()

    service = await Bootstrap(
        simple, pool_factory=PoolFactory([FakePool()]), broker_connect=broker
    ).start()

    assert service.publisher is None
    assert service.posts.announcing is False
    assert broker.calls == 0
