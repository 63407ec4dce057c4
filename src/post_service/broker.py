"""
Broker connector and announcement publisher (RabbitMQ via aio-pika).

One timed connection attempt, one channel, one non-durable queue. Messages
are not persisted by the broker across restarts.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Awaitable, Callable, Optional

import aio_pika
from loguru import logger

from .errors import BrokerTimeout, BrokerUnavailable
from .metrics import metrics_registry

DEFAULT_QUEUE = "post_created"

Connect = Callable[[str], Awaitable[Any]]

# close() tasks for connections that arrived after their timeout
_pending_closes: set[asyncio.Task] = set()


class Publisher:
    """Best-effort announcement publisher bound to one channel and queue.

    A publisher without a channel is in the "publishing unavailable" state:
    every publish is recorded and dropped.
    """

    def __init__(
        self,
        connection: Optional[Any],
        channel: Optional[Any],
        queue_name: str = DEFAULT_QUEUE,
        *,
        publish_timeout: float = 5.0,
    ):
        self.connection = connection
        self.channel = channel
        self.queue_name = queue_name
        self.publish_timeout = publish_timeout

    @classmethod
    def unavailable(cls, queue_name: str = DEFAULT_QUEUE) -> "Publisher":
        return cls(None, None, queue_name)

    @property
    def available(self) -> bool:
        return self.channel is not None and not self.channel.is_closed

    async def publish(self, payload: bytes) -> bool:
        """Publish payload to the queue. Never raises; returns whether it was handed off."""
        if self.channel is None:
            metrics_registry.announcements_total.labels(
                queue=self.queue_name, outcome="unavailable"
            ).inc()
            logger.warning(f"Publishing unavailable, dropped announcement: {payload!r}")
            return False

        start = time.perf_counter()
        try:
            await asyncio.wait_for(
                self.channel.default_exchange.publish(
                    aio_pika.Message(body=payload, content_type="application/json"),
                    routing_key=self.queue_name,
                ),
                timeout=self.publish_timeout,
            )
        except Exception as exc:
            metrics_registry.announcements_total.labels(
                queue=self.queue_name, outcome="failed"
            ).inc()
            logger.error(f"Announcement publish failed: {type(exc).__name__}: {exc}")
            return False

        elapsed_ms = (time.perf_counter() - start) * 1000
        metrics_registry.announce_latency_ms.labels(queue=self.queue_name).observe(elapsed_ms)
        metrics_registry.announcements_total.labels(
            queue=self.queue_name, outcome="published"
        ).inc()
        logger.info(f" [x] Sent {payload.decode('utf-8', 'replace')}")
        return True

    async def close(self) -> None:
        if self.connection is not None and not self.connection.is_closed:
            await self.connection.close()


def _discard_late_connection(task: asyncio.Future) -> None:
    """Close a connection that completed after its timeout already fired."""
    if task.cancelled() or task.exception() is not None:
        return
    logger.warning("Broker connected after the connect timeout, closing it")
    closing = asyncio.ensure_future(task.result().close())
    _pending_closes.add(closing)
    closing.add_done_callback(_close_done)


def _close_done(closing: asyncio.Task) -> None:
    _pending_closes.discard(closing)
    if not closing.cancelled() and closing.exception() is not None:
        logger.warning(f"Closing late broker connection failed: {closing.exception()}")


async def connect_broker(
    url: str,
    connect_timeout: float = 5.0,
    *,
    queue_name: str = DEFAULT_QUEUE,
    publish_timeout: float = 5.0,
    connect: Optional[Connect] = None,
) -> Publisher:
    """
    Connect to the broker, open a channel and declare the announcement queue.

    The connect call is raced against connect_timeout. If the timer wins the
    attempt fails, and a connection that still arrives is closed unused.

    Raises:
        BrokerTimeout: connect did not finish within connect_timeout.
        BrokerUnavailable: connect, channel or queue declaration failed.
    """
    connect = connect or aio_pika.connect
    task = asyncio.ensure_future(connect(url))
    done, _ = await asyncio.wait({task}, timeout=connect_timeout)
    if not done:
        task.add_done_callback(_discard_late_connection)
        task.cancel()
        raise BrokerTimeout(f"RabbitMQ connection timeout after {connect_timeout}s")

    try:
        connection = task.result()
    except Exception as e:
        raise BrokerUnavailable(f"RabbitMQ connection failed: {e}") from e

    try:
        channel = await connection.channel()
        await channel.declare_queue(queue_name, durable=False)
    except Exception as e:
        await connection.close()
        raise BrokerUnavailable(f"RabbitMQ channel setup failed: {e}") from e

    logger.success(f"Connected to RabbitMQ, queue '{queue_name}' declared")
    return Publisher(connection, channel, queue_name, publish_timeout=publish_timeout)
