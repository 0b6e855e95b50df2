"""Task coordinator that runs one audio-to-answer task at a time.

A task moves through these states::

    IDLE -> ACCEPTED -> TRANSCRIBING -> GENERATING | STREAMING -> COMPLETE -> IDLE

with CANCELLED and ERRORED as alternative endings that also return to IDLE.
Cancellation is cooperative: a cancel request only sets a flag, and the
running task looks at it at the checkpoints listed in ``Checkpoint``.
"""

import uuid
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import AsyncIterator, Optional

from ..errors import InvalidTaskError
from ..events.notifier import TaskEventSink
from ..generation.answer_generator import AnswerGenerator
from ..generation.direct_audio import DirectAudioProcessor
from ..models.answer import StreamingAnswer
from ..models.events import (
    CancelledEvent,
    ErrorEvent,
    StreamChunkEvent,
    StreamEndEvent,
    TranscriptEvent,
    UpdateEvent,
)
from ..models.task import Language, TaskMode, TaskRequest
from ..models.transcription import AttemptOptions
from ..storage.audio_files import DEFAULT_MIN_AUDIO_BYTES, validate_audio_file
from ..transcription.engine import TranscriptionStrategyEngine
from .session_store import SessionStore

logger = logging.getLogger(__name__)

APOLOGY_MESSAGES = {
    Language.EN: (
        "Sorry, I didn't catch that. Please try again and make sure that:\n\n"
        "1. Your microphone is working properly\n"
        "2. You're speaking loud enough\n"
        "3. There isn't too much background noise\n\n"
        "You can also try selecting a different microphone device if available."
    ),
    Language.VI: (
        "Xin lỗi, tôi không nghe rõ. Vui lòng thử lại và đảm bảo rằng:\n\n"
        "1. Microphone của bạn đang hoạt động\n"
        "2. Bạn đang nói đủ to\n"
        "3. Không có tiếng ồn xung quanh\n\n"
        "Bạn cũng có thể thử chọn một thiết bị microphone khác nếu có sẵn."
    ),
}

ERROR_PREFIXES = {
    Language.EN: "Error",
    Language.VI: "Lỗi",
}

MISSING_AUDIO_MESSAGES = {
    TaskMode.TRANSCRIBE: "No audio file was uploaded",
    TaskMode.RETRY: "No audio file available for retry",
    TaskMode.DIRECT: "No audio file available for direct processing",
}


class TaskState(Enum):
    IDLE = "idle"
    ACCEPTED = "accepted"
    TRANSCRIBING = "transcribing"
    GENERATING = "generating"
    STREAMING = "streaming"
    COMPLETE = "complete"
    CANCELLED = "cancelled"
    ERRORED = "errored"


class Checkpoint(Enum):
    """Places where a running task checks for cancellation."""
    BEFORE_TRANSCRIPTION = "before transcription"
    BEFORE_GENERATION = "before generation"
    AFTER_GENERATION = "after generation"
    BEFORE_STREAM_CHUNK = "before stream chunk"
    AFTER_STREAM_CHUNK = "after stream chunk"
    BEFORE_COMPLETE = "before completion"


class TaskCancelled(Exception):
    """Raised inside a task when a checkpoint sees the cancellation flag."""

    def __init__(self, checkpoint: Checkpoint):
        super().__init__(f"cancelled {checkpoint.value}")
        self.checkpoint = checkpoint


@dataclass
class TaskContext:
    """Per-task values fixed when the task is accepted."""
    task_id: str
    request: TaskRequest
    audio_file: Optional[str]
    attempt_options: AttemptOptions
    previous_question: Optional[str] = None
    streaming_started: bool = False


async def _single_chunk(text: str) -> AsyncIterator[str]:
    if text:
        yield text


class TaskCoordinator:
    """Sequences transcription, answer generation and event delivery for a task."""

    def __init__(self,
                 store: SessionStore,
                 transcriber: TranscriptionStrategyEngine,
                 generator: AnswerGenerator,
                 direct_processor: DirectAudioProcessor,
                 sink: TaskEventSink,
                 min_audio_bytes: int = DEFAULT_MIN_AUDIO_BYTES):
        """Initialize task coordinator.

        Args:
            store: Session shared by all tasks of this process
            transcriber: Speech-to-text with retry rotation
            generator: Answer generation for a known question
            direct_processor: Audio straight to the generative model
            sink: Receiver of task lifecycle events
            min_audio_bytes: Files below this size are logged as suspect
        """
        self.store = store
        self.transcriber = transcriber
        self.generator = generator
        self.direct_processor = direct_processor
        self.sink = sink
        self.min_audio_bytes = min_audio_bytes

        self.state = TaskState.IDLE
        self.current_task: Optional[asyncio.Task] = None

    def accept_task(self, request: TaskRequest) -> "asyncio.Task[None]":
        """Validate a request and start processing it in the background.

        Must be called from a running event loop. Results are delivered as
        events; the returned task may be awaited but does not need to be.

        Raises:
            InvalidTaskError: if the audio file is missing or empty
            TaskInProgressError: if another task is still running
        """
        audio_file = self._resolve_audio_file(request)
        loop = asyncio.get_running_loop()

        task_id = uuid.uuid4().hex[:8]
        self.store.begin_task(task_id)
        try:
            context = self._start(task_id, request, audio_file)
        except BaseException:
            # A failing listener must not leave the session claimed
            self.store.current_audio_file = None
            self.store.end_task(task_id)
            self._set_state(TaskState.IDLE)
            raise

        self.current_task = loop.create_task(self._run(context))
        return self.current_task

    async def run_task(self, request: TaskRequest) -> None:
        """Accept a request and wait until it reaches a terminal event."""
        await self.accept_task(request)

    def request_cancel(self) -> None:
        """Ask the running task to stop at its next checkpoint. Idempotent."""
        if not self.store.cancelled:
            logger.info("Cancelling current processing")
        self.store.cancelled = True

    def get_status(self):
        return self.store.get_status()

    def _resolve_audio_file(self, request: TaskRequest) -> Optional[str]:
        audio_file = request.audio_file
        if not audio_file and request.mode is not TaskMode.TRANSCRIBE:
            audio_file = self.store.last_processed_file

        if request.mode is TaskMode.ANSWER:
            return audio_file

        if not audio_file:
            raise InvalidTaskError(MISSING_AUDIO_MESSAGES[request.mode])
        validate_audio_file(audio_file, self.min_audio_bytes)
        return audio_file

    def _start(self, task_id: str, request: TaskRequest, audio_file: Optional[str]) -> TaskContext:
        """Reset the session for a new task and announce it."""
        self.store.cancelled = False

        if request.mode is TaskMode.RETRY:
            retry_count = self.store.increment_retry_count()
            attempt_options = AttemptOptions(retry_attempt=True, attempt_number=retry_count)
        else:
            if request.mode is not TaskMode.ANSWER:
                self.store.retry_count = 0
            attempt_options = AttemptOptions()

        if audio_file:
            self.store.current_audio_file = audio_file
            self.store.last_processed_file = audio_file

        previous_question = None
        if request.is_follow_up:
            previous_question = self.store.last_question
            if previous_question is None:
                logger.warning("Follow-up requested but no previous question exists - proceeding without context")

        logger.info(f"Task {task_id} accepted: mode={request.mode.value}, file={audio_file}, "
                    f"language={request.language.value}, topic={request.topic_context}, "
                    f"follow_up={request.is_follow_up}, streaming={request.use_streaming}")

        self._set_state(TaskState.ACCEPTED)
        self.sink.on_processing()
        return TaskContext(
            task_id=task_id,
            request=request,
            audio_file=audio_file,
            attempt_options=attempt_options,
            previous_question=previous_question,
        )

    async def _run(self, context: TaskContext) -> None:
        try:
            if context.request.mode is TaskMode.DIRECT:
                await self._run_direct(context)
            else:
                await self._run_transcribed(context)
        except TaskCancelled as cancelled:
            self._emit_cancelled(context, cancelled.checkpoint.value)
        except Exception as e:
            if self.store.cancelled:
                logger.info(f"Task {context.task_id} failed after cancellation: {e}")
                self._emit_cancelled(context, "after a failure")
            else:
                self._emit_error(context, e)
        finally:
            self.store.current_audio_file = None
            self.store.end_task(context.task_id)
            self._set_state(TaskState.IDLE)

    async def _run_transcribed(self, context: TaskContext) -> None:
        request = context.request

        if request.mode is TaskMode.ANSWER:
            transcript = request.transcript.strip()
        else:
            self._checkpoint(Checkpoint.BEFORE_TRANSCRIPTION)
            self._set_state(TaskState.TRANSCRIBING)
            transcript = await self.transcriber.transcribe(
                context.audio_file,
                request.language,
                context.attempt_options,
                is_cancelled=lambda: self.store.cancelled,
            )
            transcript = transcript.strip()

        if not transcript:
            self._checkpoint(Checkpoint.BEFORE_COMPLETE)
            self._complete_empty(context)
            return

        self._checkpoint(Checkpoint.BEFORE_GENERATION)
        self._remember_question(context, transcript)

        if request.use_streaming:
            stream = self.generator.generate_answer_stream(
                transcript,
                request.language,
                request.topic_context,
                context.previous_question,
                request.custom_context,
                model=request.model_override,
            )
            await self._stream_answer(context, transcript, stream, processed_with_gemini=False)
            return

        self._set_state(TaskState.GENERATING)
        answer = await self.generator.generate_answer(
            transcript,
            request.language,
            request.topic_context,
            context.previous_question,
            request.custom_context,
            model=request.model_override,
        )
        self._checkpoint(Checkpoint.AFTER_GENERATION)
        self._complete(context, transcript, answer, processed_with_gemini=False)

    async def _run_direct(self, context: TaskContext) -> None:
        request = context.request

        self._checkpoint(Checkpoint.BEFORE_GENERATION)
        self._set_state(TaskState.GENERATING)
        result = await self.direct_processor.process_audio_direct(
            context.audio_file,
            request.language,
            request.topic_context,
            request.custom_context,
            request.model_override,
        )
        self._checkpoint(Checkpoint.AFTER_GENERATION)
        self._remember_question(context, result.transcript)

        if request.use_streaming:
            await self._stream_answer(context, result.transcript, _single_chunk(result.answer),
                                      processed_with_gemini=True)
        else:
            self._complete(context, result.transcript, result.answer, processed_with_gemini=True)

    async def _stream_answer(self,
                             context: TaskContext,
                             transcript: str,
                             stream: AsyncIterator[str],
                             processed_with_gemini: bool) -> None:
        """Forward streamed chunks as events and finish with the accumulated answer."""
        self._set_state(TaskState.STREAMING)
        context.streaming_started = True
        self.sink.on_transcript(TranscriptEvent(transcript, processed_with_gemini))

        answer = StreamingAnswer()
        try:
            async for chunk in stream:
                self._checkpoint(Checkpoint.BEFORE_STREAM_CHUNK)
                answer.add(chunk)
                self.sink.on_stream_chunk(StreamChunkEvent(chunk))
                self._checkpoint(Checkpoint.AFTER_STREAM_CHUNK)
        finally:
            await stream.aclose()

        self._checkpoint(Checkpoint.BEFORE_COMPLETE)
        logger.info(f"Task {context.task_id} streamed {answer.chunk_count} chunks "
                    f"({len(answer.accumulated_text)} chars)")
        self._set_state(TaskState.COMPLETE)
        self.sink.on_stream_end(StreamEndEvent(
            full_answer=answer.accumulated_text,
            transcript=transcript,
            audio_file=context.audio_file,
            is_follow_up=context.request.is_follow_up,
            processed_with_gemini=processed_with_gemini,
        ))

    def _complete(self, context: TaskContext, transcript: str, answer: str, processed_with_gemini: bool) -> None:
        self._checkpoint(Checkpoint.BEFORE_COMPLETE)
        self._set_state(TaskState.COMPLETE)
        self.sink.on_update(UpdateEvent(
            transcript=transcript,
            answer=answer,
            audio_file=context.audio_file,
            processed_with_gemini=processed_with_gemini,
            is_follow_up=context.request.is_follow_up,
        ))

    def _complete_empty(self, context: TaskContext) -> None:
        """Answer an empty transcript with an apology instead of generating."""
        logger.info(f"Empty transcript for {context.audio_file}, returning apology message")
        self._set_state(TaskState.COMPLETE)
        self.sink.on_update(UpdateEvent(
            transcript="",
            answer=APOLOGY_MESSAGES[context.request.language],
            audio_file=context.audio_file,
            is_follow_up=context.request.is_follow_up,
            empty_transcript=True,
        ))

    def _remember_question(self, context: TaskContext, transcript: str) -> None:
        if context.request.is_follow_up or not transcript:
            return
        self.store.last_question = transcript
        logger.info(f"Storing new question: {transcript}")

    def _checkpoint(self, checkpoint: Checkpoint) -> None:
        if self.store.cancelled:
            raise TaskCancelled(checkpoint)

    def _emit_cancelled(self, context: TaskContext, where: str) -> None:
        logger.info(f"Task {context.task_id} cancelled {where}")
        self._set_state(TaskState.CANCELLED)
        self.sink.on_cancelled(CancelledEvent())

    def _emit_error(self, context: TaskContext, error: Exception) -> None:
        raw_error = str(error) or error.__class__.__name__
        message = f"{ERROR_PREFIXES[context.request.language]}: {raw_error}"
        logger.error(f"Task {context.task_id} failed: {raw_error}", exc_info=error)

        self._set_state(TaskState.ERRORED)
        event = ErrorEvent(message=message, error=raw_error)
        if context.streaming_started:
            self.sink.on_stream_error(event)
        else:
            self.sink.on_error(event)

    def _set_state(self, state: TaskState) -> None:
        if state is not self.state:
            logger.debug(f"Task state: {self.state.value} -> {state.value}")
        self.state = state
