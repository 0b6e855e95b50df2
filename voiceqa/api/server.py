"""aiohttp web server exposing the task coordinator over HTTP and WebSocket."""

import json
import signal
import asyncio
import logging
from typing import Any, Dict, Optional, Set, Tuple, cast

from aiohttp import BodyPartReader, WSMsgType, web
from pubsub import pub

from .. import __version__
from ..errors import InvalidTaskError, ProviderError, TaskInProgressError
from ..events.notifier import EventNotifier
from ..generation.gemini_engine import GeminiEngine
from ..models.task import TaskMode, TaskRequest
from ..services.task_coordinator import TaskCoordinator
from ..storage.audio_files import UploadStore

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1/recording"
MAX_UPLOAD_SIZE = 50 * 1024 * 1024  # 50MB
AUDIO_FIELD = "audio"


class VoiceQAServer:
    """HTTP routes that start, cancel and inspect tasks, plus a WebSocket event feed.

    Every notifier event is forwarded to connected WebSocket clients as
    ``{"event": <name>, "data": <payload>}``.
    """

    def __init__(self,
                 coordinator: TaskCoordinator,
                 notifier: EventNotifier,
                 upload_store: UploadStore,
                 engine: Optional[GeminiEngine] = None,
                 host: str = "0.0.0.0",
                 port: int = 3000,
                 cleanup_uploads_on_exit: bool = True):
        """Initialize server.

        Args:
            coordinator: Runs the accepted tasks
            notifier: Event source forwarded to WebSocket clients
            upload_store: Where uploaded audio is written
            engine: Generative engine used for model listing, optional
            host: Interface to bind
            port: Port to bind
            cleanup_uploads_on_exit: Delete stored uploads when the app shuts down
        """
        self.coordinator = coordinator
        self.notifier = notifier
        self.upload_store = upload_store
        self.engine = engine
        self.host = host
        self.port = port
        self.cleanup_uploads_on_exit = cleanup_uploads_on_exit

        # One queue per connected WebSocket client
        self._clients: Set[asyncio.Queue] = set()
        self._runner: Optional[web.AppRunner] = None
        self._stop_event: Optional[asyncio.Event] = None

        self.app = self._setup_routes()

    def _setup_routes(self) -> web.Application:
        """Set up aiohttp routes."""
        app = web.Application(client_max_size=MAX_UPLOAD_SIZE)

        app.router.add_get("/", self._handle_health)

        app.router.add_post(f"{API_PREFIX}/upload", self._handle_upload)
        app.router.add_post(f"{API_PREFIX}/retry-upload", self._handle_retry_upload)
        app.router.add_post(f"{API_PREFIX}/gemini-upload", self._handle_direct_upload)
        app.router.add_post(f"{API_PREFIX}/retry", self._handle_retry)
        app.router.add_post(f"{API_PREFIX}/gemini", self._handle_direct)
        app.router.add_post(f"{API_PREFIX}/stream", self._handle_stream)
        app.router.add_post(f"{API_PREFIX}/cancel", self._handle_cancel)
        app.router.add_post(f"{API_PREFIX}/clear-audio-files", self._handle_clear_audio_files)
        app.router.add_get(f"{API_PREFIX}/status", self._handle_status)
        app.router.add_get(f"{API_PREFIX}/models", self._handle_models)
        app.router.add_get(f"{API_PREFIX}/ws", self._handle_websocket)

        app.on_startup.append(self._on_startup)
        app.on_shutdown.append(self._on_shutdown)
        app.on_cleanup.append(self._on_cleanup)
        return app

    # Lifecycle

    async def _on_startup(self, app: web.Application) -> None:
        self.notifier.subscribe_all(self._on_event)
        logger.info("Event forwarding to WebSocket clients started")

    async def _on_shutdown(self, app: web.Application) -> None:
        # None tells each client's sender loop to close its socket
        for queue in list(self._clients):
            queue.put_nowait(None)

    async def _on_cleanup(self, app: web.Application) -> None:
        self.notifier.unsubscribe_all(self._on_event)
        if self.cleanup_uploads_on_exit:
            self.upload_store.cleanup()

    def _on_event(self, payload: Dict[str, Any], topic=pub.AUTO_TOPIC) -> None:
        """pubsub listener: queue an event for every connected client."""
        message = {"event": self.notifier.event_name(topic.getName()).value, "data": payload}
        for queue in self._clients:
            queue.put_nowait(message)

    # Handlers

    async def _handle_health(self, request: web.Request) -> web.Response:
        """GET / - Liveness check."""
        return web.json_response({"status": "ok", "service": "voiceqa", "version": __version__})

    async def _handle_upload(self, request: web.Request) -> web.Response:
        """POST /upload - Store uploaded audio and transcribe it."""
        return await self._accept_upload(request, TaskMode.TRANSCRIBE)

    async def _handle_retry_upload(self, request: web.Request) -> web.Response:
        """POST /retry-upload - Store uploaded audio and retry with the next strategy."""
        return await self._accept_upload(request, TaskMode.RETRY)

    async def _handle_direct_upload(self, request: web.Request) -> web.Response:
        """POST /gemini-upload - Store uploaded audio and answer it directly."""
        return await self._accept_upload(request, TaskMode.DIRECT)

    async def _handle_retry(self, request: web.Request) -> web.Response:
        """POST /retry - Transcribe a stored file again."""
        return await self._accept_json(request, TaskMode.RETRY)

    async def _handle_direct(self, request: web.Request) -> web.Response:
        """POST /gemini - Answer a stored file with the generative model directly."""
        return await self._accept_json(request, TaskMode.DIRECT)

    async def _handle_stream(self, request: web.Request) -> web.Response:
        """POST /stream - Answer an already known transcript."""
        return await self._accept_json(request, TaskMode.ANSWER)

    async def _handle_cancel(self, request: web.Request) -> web.Response:
        """POST /cancel - Ask the running task to stop."""
        self.coordinator.request_cancel()
        return web.json_response({"message": "Processing cancelled"})

    async def _handle_status(self, request: web.Request) -> web.Response:
        """GET /status - Current session snapshot."""
        return web.json_response(self.coordinator.get_status())

    async def _handle_models(self, request: web.Request) -> web.Response:
        """GET /models - Generative models usable for answering."""
        if self.engine is None:
            return web.json_response({"error": "Model listing not available"}, status=503)
        try:
            models = await self.engine.list_models()
        except ProviderError as e:
            logger.error(f"Failed to list models: {e}")
            return web.json_response({"error": str(e)}, status=502)
        return web.json_response({"models": models})

    async def _handle_clear_audio_files(self, request: web.Request) -> web.Response:
        """POST /clear-audio-files - Delete stored uploads."""
        if self.coordinator.store.is_busy:
            return web.json_response({"error": "Cannot clear audio files while processing"}, status=409)
        deleted = self.upload_store.cleanup()
        return web.json_response({"message": "Audio files cleared", "deleted": deleted})

    async def _handle_websocket(self, request: web.Request) -> web.WebSocketResponse:
        """GET /ws - Event feed; accepts "cancel" and "status" requests."""
        ws = web.WebSocketResponse(heartbeat=30.0)
        await ws.prepare(request)

        queue: asyncio.Queue = asyncio.Queue()
        self._clients.add(queue)
        sender = asyncio.create_task(self._forward_events(ws, queue))
        logger.info(f"WebSocket client connected ({len(self._clients)} total)")

        try:
            async for msg in ws:
                if msg.type == WSMsgType.TEXT:
                    await self._handle_ws_message(ws, msg.data)
                elif msg.type == WSMsgType.ERROR:
                    logger.error(f"WebSocket error: {ws.exception()}")
        finally:
            self._clients.discard(queue)
            sender.cancel()
            sender_result, = await asyncio.gather(sender, return_exceptions=True)
            if isinstance(sender_result, Exception):
                logger.warning(f"WebSocket event sender failed: {sender_result}")
            logger.info(f"WebSocket client disconnected ({len(self._clients)} remaining)")

        return ws

    async def _forward_events(self, ws: web.WebSocketResponse, queue: asyncio.Queue) -> None:
        while True:
            message = await queue.get()
            if message is None or ws.closed:
                await ws.close()
                return
            await ws.send_json(message)

    async def _handle_ws_message(self, ws: web.WebSocketResponse, data: str) -> None:
        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            await ws.send_json({"event": "error", "data": {"message": "Invalid JSON", "error": "Invalid JSON"}})
            return

        event = message.get("event") if isinstance(message, dict) else None
        if event == "cancel":
            self.coordinator.request_cancel()
        elif event == "status":
            await ws.send_json({"event": "status", "data": self.coordinator.get_status()})
        else:
            logger.debug(f"Ignoring WebSocket message: {data}")

    # Helpers

    async def _accept_upload(self, request: web.Request, mode: TaskMode) -> web.Response:
        if not request.content_type.startswith("multipart/"):
            return web.json_response({"error": "Expected multipart/form-data with an audio file"}, status=400)

        audio_data, filename, fields = await self._read_multipart(request)
        if not audio_data:
            return web.json_response({"error": "No audio file uploaded"}, status=400)

        try:
            audio_file = self.upload_store.save_upload(audio_data, filename)
        except InvalidTaskError as e:
            return web.json_response({"error": str(e)}, status=400)

        response = self._accept(fields, mode, audio_file=audio_file)
        if response.status != 202:
            self.upload_store.discard_upload(audio_file)
        return response

    async def _read_multipart(self, request: web.Request) -> Tuple[Optional[bytes], Optional[str], Dict[str, str]]:
        """Read the audio part and the plain form fields of a multipart body."""
        reader = await request.multipart()

        audio_data: Optional[bytes] = None
        filename: Optional[str] = None
        fields: Dict[str, str] = {}

        async for field in reader:
            part = cast(BodyPartReader, field)
            if part.name == AUDIO_FIELD:
                filename = part.filename
                audio_data = bytes(await part.read())
            elif part.name:
                value = await part.text()
                # Empty form fields mean "use the default"
                if value != "":
                    fields[part.name] = value

        return audio_data, filename, fields

    async def _accept_json(self, request: web.Request, mode: TaskMode) -> web.Response:
        payload: Any = {}
        if request.can_read_body:
            try:
                payload = await request.json()
            except json.JSONDecodeError:
                return web.json_response({"error": "Invalid JSON"}, status=400)
        if not isinstance(payload, dict):
            return web.json_response({"error": "Request body must be a JSON object"}, status=400)
        return self._accept(payload, mode)

    def _accept(self, payload: Dict[str, Any], mode: TaskMode, **overrides: Any) -> web.Response:
        try:
            task_request = TaskRequest.from_payload(payload, mode=mode, **overrides)
            self.coordinator.accept_task(task_request)
        except InvalidTaskError as e:
            logger.warning(f"Rejected {mode.value} request: {e}")
            return web.json_response({"error": str(e)}, status=400)
        except TaskInProgressError as e:
            logger.warning(f"Rejected {mode.value} request: {e}")
            return web.json_response({"error": str(e)}, status=409)

        return web.json_response({
            "message": "Processing started",
            "mode": mode.value,
            "audioFile": self.coordinator.store.current_audio_file,
        }, status=202)

    # Running

    async def run(self) -> None:
        """Serve until SIGINT/SIGTERM or stop()."""
        self._runner = web.AppRunner(self.app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()

        logger.info(f"🚀 VoiceQA server listening on http://{self.host}:{self.port}")
        logger.info(f"  WebSocket: ws://{self.host}:{self.port}{API_PREFIX}/ws")

        self._stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self._stop_event.set)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or outside the main thread
                pass

        try:
            await self._stop_event.wait()
        finally:
            self._stop_event = None
            await self._runner.cleanup()
            logger.info("Server stopped")

    def stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
