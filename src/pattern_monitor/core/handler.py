"""
Message Handler
===============
Executes a MessagePlan against the key-value store and the logger.

Order per message:
    1. received / skip log events
    2. open bucket (one open per message)
    3. semantic writes in field-id order, then the bundle write
    4. retrieval self-check log events

The first store failure aborts the remaining writes and propagates to the
host; parse and shape failures were already recovered during planning.
"""

from dataclasses import dataclass
from typing import Iterable, Optional

from .config import PatternMonitorConfig, get_config
from .logging_config import component_logger
from .pipeline import LogEvent, MessagePlan, process_message


@dataclass(frozen=True)
class BrokerMessage:
    subject: str
    body: bytes


class MessageHandler:
    """
    Handles inbound broker messages.

    Args:
        store: Object with an async-context-manager `open(bucket_name)`
            yielding a bucket with `async set(key, value)`.
        config: Optional config; defaults to the global singleton.
    """

    def __init__(self, store, config: Optional[PatternMonitorConfig] = None):
        self.store = store
        self.config = config or get_config()
        self.log = component_logger(self.config.observability.component)

    def _emit(self, events: Iterable[LogEvent]) -> None:
        for event in events:
            self.log.log(event.level, event.message)

    async def handle_message(self, msg: BrokerMessage) -> MessagePlan:
        """
        Process one message to completion.

        Returns:
            The executed MessagePlan.

        Raises:
            StoreError: bucket missing, access denied, or any backend fault.
            SerializeError: a vector could not be serialised.
        """
        plan = process_message(msg.subject, msg.body, self.config)
        self._emit(plan.log_events)
        if plan.skipped:
            return plan

        async with self.store.open(self.config.store.bucket) as bucket:
            for write in plan.writes:
                await bucket.set(write.key, write.value)
                self._emit([write.log])

        self._emit(plan.retrieval_events)
        return plan
