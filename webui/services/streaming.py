"""Byte-range file streaming for the media endpoint"""

import re
from pathlib import Path
from typing import Optional, Tuple, Union

from starlette.background import BackgroundTask
from starlette.responses import StreamingResponse

from util import content_type_for


CHUNK_SIZE = 1024 * 1024

# Single range only: "bytes=<start>-" or "bytes=<start>-<end>"
RANGE_PATTERN = re.compile(r'^\s*bytes\s*=\s*(\d+)\s*-\s*(\d*)\s*$', re.IGNORECASE)


def parse_range(header: Optional[str], file_size: int) -> Optional[Tuple[int, int]]:
    """
    Parse a Range header against a file size

    Args:
        header: Raw Range header value
        file_size: Size of the file in bytes

    Returns:
        (start, end) inclusive, with end clamped to the last byte, or None
        if the header is absent, malformed or unsatisfiable
    """
    if not header:
        return None

    match = RANGE_PATTERN.match(header)
    if not match:
        return None

    start = int(match.group(1))
    end = int(match.group(2)) if match.group(2) else file_size - 1
    end = min(end, file_size - 1)

    if start >= file_size or start > end:
        return None
    return start, end


class FileRangeStream:
    """
    Iterator over bytes start..end (inclusive) of a file

    The file is opened on construction; close() releases it and is safe to
    call more than once. The handle is also closed once the span is consumed.
    """

    def __init__(self, path: Union[str, Path], start: int, end: int, chunk_size: int = CHUNK_SIZE):
        self.chunk_size = chunk_size
        self._file = open(path, 'rb')
        self._file.seek(start)
        self._remaining = end - start + 1

    @property
    def closed(self) -> bool:
        return self._file.closed

    def __iter__(self):
        return self

    def __next__(self) -> bytes:
        if self._remaining <= 0 or self._file.closed:
            self.close()
            raise StopIteration
        data = self._file.read(min(self.chunk_size, self._remaining))
        if not data:
            self.close()
            raise StopIteration
        self._remaining -= len(data)
        return data

    def close(self) -> None:
        if not self._file.closed:
            self._file.close()


def build_media_response(file_path: Union[str, Path], range_header: Optional[str]) -> StreamingResponse:
    """
    Build a streaming response for a media file

    Args:
        file_path: Existing media file
        range_header: Value of the request's Range header, if any

    Returns:
        206 response for a valid single range, otherwise 200 with the whole file

    Raises:
        OSError: If the file cannot be opened
    """
    path = Path(file_path)
    file_size = path.stat().st_size
    content_type = content_type_for(path)

    byte_range = parse_range(range_header, file_size)
    if byte_range:
        start, end = byte_range
        stream = FileRangeStream(path, start, end)
        headers = {
            'Content-Range': f"bytes {start}-{end}/{file_size}",
            'Accept-Ranges': 'bytes',
            'Content-Length': str(end - start + 1),
        }
        status_code = 206
    else:
        stream = FileRangeStream(path, 0, file_size - 1)
        headers = {
            'Accept-Ranges': 'bytes',
            'Content-Length': str(file_size),
        }
        status_code = 200

    # The background task also runs when the client disconnects mid-stream
    return StreamingResponse(
        stream,
        status_code=status_code,
        headers=headers,
        media_type=content_type,
        background=BackgroundTask(stream.close),
    )
