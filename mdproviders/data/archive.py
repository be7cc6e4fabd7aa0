"""
Access to the entries of downloaded ZIP archives.
"""

import io
import logging
import zipfile
from typing import IO, Iterator, Tuple

from .models import MalformedDataError

logger = logging.getLogger(__name__)


def iter_entries(payload: bytes, first_only: bool = False) -> Iterator[Tuple[str, IO[bytes]]]:
    """
    Iterate over the files stored in a ZIP archive held in memory.

    Each entry is exposed as a binary stream that decompresses lazily; the
    stream is only valid until the iterator advances.

    Args:
        payload: Raw archive bytes
        first_only: Stop after the first file entry

    Yields:
        Tuples of (entry name, decompressed byte stream)
    """
    try:
        archive = zipfile.ZipFile(io.BytesIO(payload))
    except zipfile.BadZipFile as e:
        raise MalformedDataError(f"Payload is not a valid ZIP archive: {e}") from e

    with archive:
        entries = [info for info in archive.infolist() if not info.is_dir()]
        if not entries:
            logger.warning("ZIP archive contains no files")
            return
        if first_only:
            entries = entries[:1]

        for info in entries:
            logger.debug(f"Reading archive entry {info.filename} ({info.file_size} bytes)")
            try:
                stream = archive.open(info)
            except (zipfile.BadZipFile, NotImplementedError) as e:
                raise MalformedDataError(
                    f"Cannot read archive entry {info.filename}: {e}"
                ) from e
            with stream:
                yield info.filename, stream
