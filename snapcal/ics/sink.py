"""Delivery targets for generated calendar files."""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Protocol, Union

logger = logging.getLogger(__name__)

ICS_MIME_TYPE = "text/calendar"
DEFAULT_ICS_FILENAME = "calendar-events.ics"


@dataclass
class SinkResult:
    """Outcome of a FileSink.write() call."""
    ok: bool
    size: int = 0
    location: Optional[str] = None
    error: Optional[str] = None


class FileSink(Protocol):
    """Something that can receive a generated file (disk, chat upload, ...)."""

    def write(self, filename: str, mime_type: str, content: Union[str, bytes]) -> SinkResult:
        ...


def safe_filename(name: Optional[str], default: str = DEFAULT_ICS_FILENAME) -> str:
    """Strip directories from a suggested file name and make sure it ends in .ics."""
    name = Path((name or "").strip()).name
    if not name:
        return default
    if not name.lower().endswith(".ics"):
        name += ".ics"
    return name


def _to_bytes(content: Union[str, bytes]) -> bytes:
    if isinstance(content, bytes):
        return content
    return content.encode("utf-8")


class LocalFileSink:
    """Write files into a directory on disk."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def write(self, filename: str, mime_type: str, content: Union[str, bytes]) -> SinkResult:
        if not filename or Path(filename).name != filename:
            return SinkResult(ok=False, error=f"Invalid file name: {filename!r}")

        payload = _to_bytes(content)
        path = self.directory / filename
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            path.write_bytes(payload)
        except OSError as e:
            logger.error(f"Failed to write {path}: {e}")
            return SinkResult(ok=False, error=str(e))

        logger.info(f"Wrote {len(payload)} bytes ({mime_type}) to {path}")
        return SinkResult(ok=True, size=len(payload), location=str(path))


class MemorySink:
    """Keep the last written file in memory, e.g. for a chat upload."""

    def __init__(self):
        self.filename: Optional[str] = None
        self.mime_type: Optional[str] = None
        self.payload: Optional[bytes] = None

    def write(self, filename: str, mime_type: str, content: Union[str, bytes]) -> SinkResult:
        self.filename = filename
        self.mime_type = mime_type
        self.payload = _to_bytes(content)
        return SinkResult(ok=True, size=len(self.payload), location=filename)

    def as_upload(self) -> io.BytesIO:
        """Named BytesIO suitable for reply_document()."""
        if self.payload is None:
            raise ValueError("Nothing has been written to this sink")
        bio = io.BytesIO(self.payload)
        bio.name = self.filename
        return bio
