"""Audio file storage and validation."""

import logging
import mimetypes
import time
import uuid
from pathlib import Path
from typing import Optional

from ..errors import InvalidTaskError

logger = logging.getLogger(__name__)

DEFAULT_MIN_AUDIO_BYTES = 1000

ACCEPTED_EXTENSIONS = {".mp3", ".wav", ".ogg", ".m4a", ".aac", ".mp4", ".webm", ".flac"}


def validate_audio_file(file_path: Optional[str], min_bytes: int = DEFAULT_MIN_AUDIO_BYTES) -> int:
    """Check that an audio file exists and has data.

    Files smaller than ``min_bytes`` are accepted but logged as suspect.

    Returns:
        Size of the file in bytes

    Raises:
        InvalidTaskError: if the file is missing or empty
    """
    if not file_path:
        raise InvalidTaskError("Audio file not found")

    path = Path(file_path)
    if not path.is_file():
        raise InvalidTaskError(f"Audio file not found: {file_path}")

    size = path.stat().st_size
    if size == 0:
        raise InvalidTaskError(f"Audio file is empty: {file_path}")

    if size < min_bytes:
        logger.warning(f"Audio file is very small ({size} bytes): {file_path}")

    return size


def read_audio_file(file_path: str, min_bytes: int = DEFAULT_MIN_AUDIO_BYTES) -> bytes:
    """Validate and read an audio file."""
    validate_audio_file(file_path, min_bytes)
    with open(file_path, 'rb') as f:
        return f.read()


def guess_audio_mime_type(file_path: str) -> str:
    """Guess the MIME type of an audio file from its extension."""
    mime_type, _ = mimetypes.guess_type(file_path)
    if not mime_type:
        return "audio/wav"
    # Browser recordings often come as .webm/.mp4 containers
    if mime_type.startswith("video/"):
        return "audio/" + mime_type.split("/", 1)[1]
    return mime_type


class UploadStore:
    """Stores uploaded audio files on disk until they are cleaned up."""

    def __init__(self, upload_dir: str = "./audio"):
        """Initialize upload store.

        Args:
            upload_dir: Directory uploaded audio is written to
        """
        self.upload_dir = Path(upload_dir)
        self.upload_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"UploadStore initialized with upload_dir: {self.upload_dir}")

    def save_upload(self, audio_data: bytes, original_filename: Optional[str] = None) -> str:
        """Save uploaded audio and return its path.

        The file name is a millisecond timestamp plus a short random suffix,
        keeping the original extension.
        """
        extension = Path(original_filename or "").suffix.lower()
        if extension not in ACCEPTED_EXTENSIONS:
            if extension:
                raise InvalidTaskError(f"File with extension {extension} is not an accepted audio format")
            extension = ".wav"

        file_path = self.upload_dir / f"{int(time.time() * 1000)}_{uuid.uuid4().hex[:6]}{extension}"

        with open(file_path, 'wb') as f:
            f.write(audio_data)

        logger.info(f"Audio upload saved: {file_path} ({len(audio_data)} bytes)")
        return str(file_path)

    def discard_upload(self, file_path: str) -> None:
        """Delete one stored upload, e.g. after its task was rejected."""
        try:
            Path(file_path).unlink()
            logger.info(f"Discarded audio upload: {file_path}")
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.error(f"Failed to delete file {file_path}: {e}")

    def cleanup(self) -> int:
        """Delete every stored upload.

        Returns:
            Number of files deleted
        """
        deleted = 0
        for file_path in self.upload_dir.iterdir():
            if not file_path.is_file():
                continue
            try:
                file_path.unlink()
                deleted += 1
            except OSError as e:
                logger.error(f"Failed to delete file {file_path}: {e}")

        logger.info(f"Temporary audio files cleaned up ({deleted} deleted)")
        return deleted
