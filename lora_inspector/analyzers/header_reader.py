"""
Bounded reading of safetensors headers.

A safetensors file starts with an 8 byte little-endian length ``H`` followed by
``H`` bytes of JSON. Validating that header against the format's rules needs a
buffer as long as the whole file, because tensor byte ranges are checked
against it, but the tensor payload itself is never looked at. The reader
therefore returns a buffer of the real file length where only the header is
real data and the payload is zero padding.
"""
import logging
import os
import struct
from pathlib import Path
from typing import Union

from ..config import DEFAULT_MAX_HEADER_SIZE
from ..exceptions import InvalidHeaderError, HeaderTooLargeError

logger = logging.getLogger(__name__)

LENGTH_PREFIX_SIZE = 8
MAX_U64 = 2 ** 64 - 1


def read_header(
        path: Union[str, Path],
        max_header_size: int = DEFAULT_MAX_HEADER_SIZE
) -> bytearray:
    """
    Read the header of a safetensors file into a file-sized buffer.

    Args:
        path: Path to the safetensors file
        max_header_size: Upper bound (exclusive) for prefix plus header, in bytes

    Returns:
        Buffer of the file's length holding the real header bytes followed by zeros

    Raises:
        FileNotFoundError: If the file does not exist
        OSError: If the file cannot be read
        InvalidHeaderError: If the length prefix is missing, overflows or points past the end
        HeaderTooLargeError: If the declared header reaches max_header_size
    """
    with open(path, 'rb') as f:
        file_length = os.fstat(f.fileno()).st_size

        prefix = f.read(LENGTH_PREFIX_SIZE)
        if len(prefix) != LENGTH_PREFIX_SIZE:
            raise InvalidHeaderError(f"File too short to contain a header length: {path}")

        (header_length,) = struct.unpack('<Q', prefix)
        total_header = header_length + LENGTH_PREFIX_SIZE
        if total_header > MAX_U64:
            raise InvalidHeaderError(f"Header length overflows: {header_length}")

        if total_header >= max_header_size:
            raise HeaderTooLargeError(
                f"Header of {total_header} bytes exceeds the {max_header_size} byte limit: {path}"
            )

        if total_header > file_length:
            raise InvalidHeaderError(
                f"Header of {total_header} bytes is longer than the {file_length} byte file: {path}"
            )

        # bytearray(n) is zero-filled, the payload part is never written
        buffer = bytearray(file_length)
        f.seek(0)
        with memoryview(buffer) as view:
            read = f.readinto(view[:total_header])
        if read != total_header:
            raise InvalidHeaderError(f"Header appears truncated: {path}")

    logger.debug(f"Read {total_header} header bytes of {file_length} from {path}")
    return buffer
