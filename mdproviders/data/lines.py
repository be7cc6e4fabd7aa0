"""
Incremental line splitting for byte streams that arrive in chunks.
"""

import codecs
from typing import BinaryIO, Iterable, Iterator, List

DEFAULT_CHUNK_SIZE = 4096


class LineSplitter:
    """Push bytes in, pop complete text lines out.

    Bytes are decoded with an incremental decoder, so a multi-byte character
    split across two chunks is only emitted once both halves have arrived.
    Lines are returned without their terminator (``\\n`` or ``\\r\\n``).
    Blank lines are skipped.
    """

    def __init__(self, encoding: str = "utf-8", errors: str = "strict"):
        """
        Initialize the splitter.

        Args:
            encoding: Text encoding of the incoming bytes
            errors: Decoder error handling scheme (``strict``, ``replace``...)
        """
        self.encoding = encoding
        self._decoder = codecs.getincrementaldecoder(encoding)(errors=errors)
        self._pending: List[str] = []
        self._closed = False

    def push(self, data: bytes) -> List[str]:
        """
        Feed a chunk of bytes.

        Args:
            data: Next chunk of the stream

        Returns:
            Lines completed by this chunk, in stream order
        """
        if self._closed:
            raise ValueError("Cannot push data into a closed LineSplitter")
        return self._split(self._decoder.decode(data, final=False))

    def close(self) -> List[str]:
        """
        Signal end of stream and flush the buffered partial line.

        Returns:
            The last line if the stream did not end with a newline
        """
        if self._closed:
            return []
        lines = self._split(self._decoder.decode(b"", final=True))
        self._closed = True

        tail = self._clean("".join(self._pending))
        self._pending = []
        if tail:
            lines.append(tail)
        return lines

    def _split(self, text: str) -> List[str]:
        if not text:
            return []

        segments = text.split("\n")
        if len(segments) == 1:
            # No newline yet, keep accumulating
            self._pending.append(text)
            return []

        first = "".join(self._pending) + segments[0]
        self._pending = [segments[-1]]

        lines = []
        for raw in [first] + segments[1:-1]:
            line = self._clean(raw)
            if line:
                lines.append(line)
        return lines

    @staticmethod
    def _clean(raw: str) -> str:
        return raw.rstrip("\r")


def iter_lines(
    stream: BinaryIO,
    encoding: str = "utf-8",
    errors: str = "strict",
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> Iterator[str]:
    """
    Lazily yield the lines of a binary file-like object.

    Args:
        stream: Object with a ``read(size)`` method returning bytes
        encoding: Text encoding of the stream
        errors: Decoder error handling scheme
        chunk_size: Number of bytes read per call

    Yields:
        Lines without terminators, blank lines skipped
    """
    splitter = LineSplitter(encoding, errors)
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            break
        yield from splitter.push(chunk)
    yield from splitter.close()


def iter_chunk_lines(
    chunks: Iterable[bytes], encoding: str = "utf-8", errors: str = "strict"
) -> Iterator[str]:
    """Same as :func:`iter_lines` for an iterable of byte chunks."""
    splitter = LineSplitter(encoding, errors)
    for chunk in chunks:
        if chunk:
            yield from splitter.push(chunk)
    yield from splitter.close()
