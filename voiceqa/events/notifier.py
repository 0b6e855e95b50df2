"""Task event notifier for pub/sub event publishing."""

import logging
from typing import Any, Callable, Dict, Protocol

from pubsub import pub

from ..models.events import (
    CancelledEvent,
    ErrorEvent,
    EventName,
    StreamChunkEvent,
    StreamEndEvent,
    TranscriptEvent,
    UpdateEvent,
)

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "voiceqa"


def _payload_prototype(payload: Dict[str, Any]) -> None:
    """Message signature shared by every event topic."""


class TaskEventSink(Protocol):
    """Channel the task coordinator writes lifecycle events to."""

    def on_processing(self) -> None: ...

    def on_transcript(self, event: TranscriptEvent) -> None: ...

    def on_stream_chunk(self, event: StreamChunkEvent) -> None: ...

    def on_stream_end(self, event: StreamEndEvent) -> None: ...

    def on_stream_error(self, event: ErrorEvent) -> None: ...

    def on_update(self, event: UpdateEvent) -> None: ...

    def on_error(self, event: ErrorEvent) -> None: ...

    def on_cancelled(self, event: CancelledEvent) -> None: ...


class EventNotifier:
    """Publishes task events using pubsub.pub.

    Each event goes to the topic ``<namespace>.<event name>`` with a single
    ``payload`` dict. Listeners look like ``listener(payload)``, optionally
    with ``topic=pub.AUTO_TOPIC``. pubsub keeps weak references, so
    subscribers must hold on to their listeners.
    """

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        """Initialize event notifier.

        Args:
            namespace: Root topic the event topics live under
        """
        self.namespace = namespace
        topic_manager = pub.getDefaultTopicMgr()
        for event in EventName:
            topic_manager.getOrCreateTopic(self.topic_for(event), _payload_prototype)
        logger.info(f"EventNotifier initialized with namespace: {namespace}")

    def topic_for(self, event: EventName) -> str:
        return f"{self.namespace}.{EventName(event).value}"

    def event_name(self, topic_name: str) -> EventName:
        """Event name of a topic published by this notifier."""
        return EventName(topic_name.rsplit(".", 1)[-1])

    def publish(self, event: EventName, payload: Dict[str, Any]) -> None:
        pub.sendMessage(self.topic_for(event), payload=payload)
        if event is not EventName.STREAM_CHUNK:
            logger.debug(f"Published {EventName(event).value}: {payload}")

    def subscribe(self, listener: Callable[..., None], event: EventName) -> None:
        pub.subscribe(listener, self.topic_for(event))

    def subscribe_all(self, listener: Callable[..., None]) -> None:
        for event in EventName:
            self.subscribe(listener, event)

    def unsubscribe_all(self, listener: Callable[..., None]) -> None:
        for event in EventName:
            topic = pub.getDefaultTopicMgr().getTopic(self.topic_for(event), okIfNone=True)
            if topic is not None and topic.hasListener(listener):
                topic.unsubscribe(listener)

    # TaskEventSink

    def on_processing(self) -> None:
        self.publish(EventName.PROCESSING, {})

    def on_transcript(self, event: TranscriptEvent) -> None:
        self.publish(EventName.TRANSCRIPT, event.to_payload())

    def on_stream_chunk(self, event: StreamChunkEvent) -> None:
        self.publish(EventName.STREAM_CHUNK, event.to_payload())

    def on_stream_end(self, event: StreamEndEvent) -> None:
        self.publish(EventName.STREAM_END, event.to_payload())

    def on_stream_error(self, event: ErrorEvent) -> None:
        self.publish(EventName.STREAM_ERROR, event.to_payload())

    def on_update(self, event: UpdateEvent) -> None:
        self.publish(EventName.UPDATE, event.to_payload())

    def on_error(self, event: ErrorEvent) -> None:
        self.publish(EventName.ERROR, event.to_payload())

    def on_cancelled(self, event: CancelledEvent) -> None:
        self.publish(EventName.PROCESSING_CANCELLED, event.to_payload())
