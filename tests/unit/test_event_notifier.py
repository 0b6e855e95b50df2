"""Unit tests for EventNotifier."""

import pytest
from pubsub import pub

from voiceqa.events.notifier import EventNotifier
from voiceqa.models.events import (
    CancelledEvent,
    ErrorEvent,
    EventName,
    StreamChunkEvent,
    StreamEndEvent,
    TranscriptEvent,
    UpdateEvent,
)


class Collector:
    """pubsub listener recording (event name, payload) pairs."""

    def __init__(self, notifier):
        self.notifier = notifier
        self.received = []

    def __call__(self, payload, topic=pub.AUTO_TOPIC):
        self.received.append((self.notifier.event_name(topic.getName()), payload))


@pytest.mark.unit
class TestEventNotifier:
    """Test cases for EventNotifier."""

    def test_topic_names(self):
        notifier = EventNotifier()

        assert notifier.topic_for(EventName.STREAM_CHUNK) == "voiceqa.streamChunk"
        assert notifier.event_name("voiceqa.processingCancelled") is EventName.PROCESSING_CANCELLED

    def test_publish_without_listeners(self):
        notifier = EventNotifier()

        notifier.on_processing()

    def test_subscribe_single_event(self):
        notifier = EventNotifier()
        received = []

        def listener(payload):
            received.append(payload)

        notifier.subscribe(listener, EventName.TRANSCRIPT)
        notifier.on_transcript(TranscriptEvent("What is a closure?"))
        notifier.on_stream_chunk(StreamChunkEvent("ignored"))

        assert received == [{"transcript": "What is a closure?", "processedWithGemini": False}]

    def test_subscribe_all_receives_every_event_in_order(self):
        notifier = EventNotifier()
        collector = Collector(notifier)
        notifier.subscribe_all(collector)

        notifier.on_processing()
        notifier.on_transcript(TranscriptEvent("Q?", processed_with_gemini=True))
        notifier.on_stream_chunk(StreamChunkEvent("A"))
        notifier.on_stream_end(StreamEndEvent("A", "Q?", "audio/1.wav", processed_with_gemini=True))
        notifier.on_stream_error(ErrorEvent("Error: boom", "boom"))
        notifier.on_update(UpdateEvent("", "Sorry", "audio/1.wav", empty_transcript=True))
        notifier.on_error(ErrorEvent("Lỗi: boom", "boom"))
        notifier.on_cancelled(CancelledEvent())

        assert [name for name, _ in collector.received] == list(EventName)
        payloads = dict(collector.received)
        assert payloads[EventName.PROCESSING] == {}
        assert payloads[EventName.STREAM_END]["fullAnswer"] == "A"
        assert payloads[EventName.UPDATE]["emptyTranscript"] is True
        assert payloads[EventName.ERROR] == {"message": "Lỗi: boom", "error": "boom"}
        assert payloads[EventName.PROCESSING_CANCELLED] == {"message": "Processing cancelled by user"}

    def test_unsubscribe_all(self):
        notifier = EventNotifier()
        collector = Collector(notifier)
        notifier.subscribe_all(collector)

        notifier.unsubscribe_all(collector)
        notifier.on_processing()

        assert collector.received == []

    def test_namespaces_are_isolated(self):
        first = EventNotifier("first")
        second = EventNotifier("second")
        collector = Collector(first)
        first.subscribe_all(collector)

        second.on_processing()

        assert collector.received == []


@pytest.mark.unit
class TestEventPayloads:
    """Test cases for event payload shapes."""

    def test_update_without_empty_flag(self):
        payload = UpdateEvent("Q?", "A", "audio/1.wav").to_payload()

        assert "emptyTranscript" not in payload
        assert payload["processedWithGemini"] is False

    def test_stream_end_payload(self):
        payload = StreamEndEvent("A", "Q?", None, is_follow_up=True).to_payload()

        assert payload == {
            "fullAnswer": "A",
            "transcript": "Q?",
            "audioFile": None,
            "isFollowUp": True,
            "processedWithGemini": False,
        }
