"""Main application entry point for VoiceQA."""

import sys
import asyncio
import argparse
import logging
from pathlib import Path
from typing import Optional

from voiceqa import __version__
from voiceqa.api.server import VoiceQAServer
from voiceqa.events.notifier import EventNotifier
from voiceqa.generation.answer_generator import AnswerGenerator
from voiceqa.generation.direct_audio import DirectAudioProcessor
from voiceqa.generation.gemini_engine import DEFAULT_MODEL, GeminiEngine
from voiceqa.services.session_store import SessionStore
from voiceqa.services.task_coordinator import TaskCoordinator
from voiceqa.storage.audio_files import DEFAULT_MIN_AUDIO_BYTES, UploadStore
from voiceqa.transcription.assemblyai_backend import AssemblyAIBackend
from voiceqa.transcription.base import AbstractTranscriptionBackend
from voiceqa.transcription.engine import TranscriptionStrategyEngine
from voiceqa.transcription.google_backend import GoogleSpeechBackend

from .config import VoiceQAConfig

logger = logging.getLogger(__name__)


class Server:

    def __init__(self, config_path: str, log_level: Optional[str] = None):
        # Load configuration
        self.config = VoiceQAConfig(config_path)
        # Command line level wins over the config file
        log_level = log_level or self.config.get('logging.level', 'INFO')
        setup_logging(self.config, log_level)

    def init(self, host: Optional[str] = None, port: Optional[int] = None) -> VoiceQAServer:
        logger.info("Initializing services...")

        min_audio_bytes = self.config.get('transcription.min_audio_bytes', DEFAULT_MIN_AUDIO_BYTES)

        self.transcriber = TranscriptionStrategyEngine(
            create_transcription_backend(self.config),
            max_retries=self.config.get('transcription.max_retries', 3),
            retry_backoff_seconds=self.config.get('transcription.retry_backoff_seconds', 2.0),
            init_retry_delay_seconds=self.config.get('transcription.init_retry_delay_seconds', 1.0),
            attempt_timeout_seconds=self.config.get('transcription.attempt_timeout_seconds', 360.0),
            min_audio_bytes=min_audio_bytes,
        )

        self.engine = GeminiEngine(
            api_key=self.config.get_api_key('gemini'),
            model=self.config.get('gemini.model', DEFAULT_MODEL),
            timeout_seconds=self.config.get('gemini.timeout_seconds', 60.0),
            thinking_level=self.config.get('gemini.thinking_level', 'minimal'),
        )

        self.notifier = EventNotifier()
        self.coordinator = TaskCoordinator(
            store=SessionStore(),
            transcriber=self.transcriber,
            generator=AnswerGenerator(self.engine),
            direct_processor=DirectAudioProcessor(self.engine, min_audio_bytes),
            sink=self.notifier,
            min_audio_bytes=min_audio_bytes,
        )

        self.server = VoiceQAServer(
            coordinator=self.coordinator,
            notifier=self.notifier,
            upload_store=UploadStore(self.config.get_upload_directory()),
            engine=self.engine,
            host=host or self.config.get('server.host', '0.0.0.0'),
            port=port or self.config.get('server.port', 3000),
            cleanup_uploads_on_exit=self.config.get('server.cleanup_uploads_on_exit', True),
        )
        return self.server

    def run(self) -> None:
        try:
            asyncio.run(self.server.run())
        finally:
            self.cleanup()

    def cleanup(self) -> None:
        self.transcriber.cleanup()


def create_transcription_backend(config: VoiceQAConfig) -> AbstractTranscriptionBackend:
    """Build the speech-to-text backend named by transcription.provider."""
    provider = config.get('transcription.provider', 'assemblyai')

    if provider == 'assemblyai':
        return AssemblyAIBackend(
            api_key=config.get_api_key('assemblyai'),
            submit_timeout_seconds=config.get('transcription.submit_timeout_seconds', 60.0),
            poll_interval_seconds=config.get('transcription.poll_interval_seconds', 3.0),
            poll_timeout_seconds=config.get('transcription.poll_timeout_seconds', 300.0),
        )
    if provider == 'google':
        return GoogleSpeechBackend(
            credentials_path=config.get_google_credentials_path(),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
            request_timeout_seconds=config.get('google_cloud.request_timeout_seconds', 60.0),
        )

    raise ValueError(f"Unknown transcription provider: {provider} (expected 'assemblyai' or 'google')")


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/voiceqa.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.WARNING)  # Only show warnings and above on console
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger = logging.getLogger(__name__)
    logger.info("=" * 50)
    logger.info("VoiceQA server starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def main() -> None:
    """Main entry point for the VoiceQA server."""
    parser = argparse.ArgumentParser(
        description="VoiceQA - transcribe spoken questions and stream back answers"
    )

    parser.add_argument(
        "--config",
        type=str,
        default="voiceqa.yaml",
        help="Path to configuration YAML file (default: voiceqa.yaml)"
    )

    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: logging.level from config, else INFO)"
    )

    parser.add_argument(
        "--host",
        type=str,
        help="Interface to bind (overrides config)"
    )

    parser.add_argument(
        "--port",
        type=int,
        help="Port to listen on (overrides config)"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"VoiceQA v{__version__}"
    )

    args = parser.parse_args()

    try:
        server = Server(args.config, args.log_level)
        server.init(args.host, args.port)
        server.run()
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except Exception as e:
        print(f"❌ Error: {e}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
