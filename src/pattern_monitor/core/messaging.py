"""
Redis Pub/Sub Host Adapter
==========================
Delivers inbound messages to the MessageHandler.

The subscriber pattern-subscribes to `MessagingConfig.subject_pattern`; the
channel name is the message subject and the payload is the body. Handler
failures are logged and the subscriber keeps consuming; Redis pub/sub has
no redelivery, so a failed message is dropped after logging. Connection
failures on the subscription or a publish surface as MessagingError.
"""

import asyncio
from typing import Optional, Union

import redis.asyncio as redis
from loguru import logger
from redis.exceptions import RedisError

from .config import MessagingConfig
from .exceptions import MessagingError, PatternMonitorError
from .handler import BrokerMessage, MessageHandler


def _as_text(value: Union[bytes, str]) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _as_bytes(value: Union[bytes, str, int]) -> bytes:
    if isinstance(value, bytes):
        return value
    return str(value).encode("utf-8")


class RedisMessageSubscriber:
    """Consumes pattern-subscribed Redis channels and dispatches messages."""

    def __init__(
        self,
        config: MessagingConfig,
        handler: MessageHandler,
        client: Optional[redis.Redis] = None,
    ):
        self.config = config
        self.handler = handler
        self._client = client
        self._stop = asyncio.Event()
        self.processed = 0
        self.failed = 0

    def stop(self) -> None:
        self._stop.set()

    async def dispatch(self, raw: dict) -> bool:
        """
        Handle one raw pub/sub record.

        Returns:
            True if a message was handled successfully, False if the record
            was not a message or the handler failed.
        """
        if raw.get("type") != "pmessage":
            return False

        msg = BrokerMessage(subject=_as_text(raw["channel"]), body=_as_bytes(raw["data"]))
        try:
            await self.handler.handle_message(msg)
        except PatternMonitorError as e:
            self.failed += 1
            self.handler.log.bind(error=e.to_dict()).error(
                f"message on subject '{msg.subject}' failed: {e}"
            )
            return False
        except Exception as e:
            self.failed += 1
            self.handler.log.opt(exception=e).error(
                f"message on subject '{msg.subject}' failed unexpectedly: {e}"
            )
            return False

        self.processed += 1
        return True

    async def run(self, max_messages: Optional[int] = None) -> None:
        """
        Subscribe and consume until stop() is called or `max_messages` are handled.

        Raises:
            MessagingError: the subscription could not be made or was lost.
        """
        own_client = self._client is None
        client = self._client or redis.Redis.from_url(self.config.url, decode_responses=False)
        pubsub = client.pubsub(ignore_subscribe_messages=True)
        subscribed = False

        try:
            await pubsub.psubscribe(self.config.subject_pattern)
            subscribed = True
            logger.info(f"Subscribed to '{self.config.subject_pattern}' on {self.config.url}")

            while not self._stop.is_set():
                raw = await pubsub.get_message(ignore_subscribe_messages=True, timeout=1.0)
                if raw is None:
                    continue
                await self.dispatch(raw)
                if max_messages is not None and self.processed + self.failed >= max_messages:
                    break
        except RedisError as e:
            raise MessagingError(
                "subscribe",
                str(e) or type(e).__name__,
                {"url": self.config.url, "pattern": self.config.subject_pattern},
            ) from e
        finally:
            await self._teardown(pubsub, client if own_client else None, subscribed)
            logger.info(
                f"Subscriber stopped: {self.processed} processed, {self.failed} failed"
            )

    async def _teardown(self, pubsub, client: Optional[redis.Redis], subscribed: bool) -> None:
        try:
            if subscribed:
                await pubsub.punsubscribe(self.config.subject_pattern)
            await pubsub.aclose()
            if client is not None:
                await client.aclose()
        except RedisError as e:
            logger.warning(f"Closing subscription failed: {e}")


async def publish_message(url: str, subject: str, body: Union[bytes, str]) -> int:
    """
    Publish one message; returns the number of subscribers that received it.

    Raises:
        MessagingError: the bus could not be reached.
    """
    client = redis.Redis.from_url(url)
    try:
        return await client.publish(subject, body)
    except RedisError as e:
        raise MessagingError("publish", str(e) or type(e).__name__, {"subject": subject}) from e
    finally:
        await client.aclose()
