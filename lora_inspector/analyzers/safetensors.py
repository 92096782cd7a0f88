"""
Validation of safetensors header buffers.

Safetensors stores an 8 byte little-endian header length, a JSON header and
the raw tensor bytes. The header maps every tensor name to its dtype, shape
and ``[begin, end)`` byte range inside the data section, plus an optional
``__metadata__`` object of free-form strings.

This module checks a buffer against the rules the format itself enforces
when a file is opened, so that a header which would be rejected by the
reference loader is rejected here too.
"""
import json
import logging
import math
import struct
from dataclasses import dataclass
from typing import Dict, Any, Tuple, Union

from ..exceptions import HeaderFormatError
from ..models.record import TensorEntry

logger = logging.getLogger(__name__)

METADATA_KEY = '__metadata__'

# Limit used by the safetensors loader itself
MAX_HEADER_SIZE = 100_000_000

# Bits per element for every dtype the format defines
DTYPE_BITS = {
    'BOOL': 8,
    'F4': 4,
    'F6_E2M3': 6,
    'F6_E3M2': 6,
    'U8': 8,
    'I8': 8,
    'F8_E5M2': 8,
    'F8_E4M3': 8,
    'F8_E8M0': 8,
    'I16': 16,
    'U16': 16,
    'F16': 16,
    'BF16': 16,
    'I32': 32,
    'U32': 32,
    'F32': 32,
    'C64': 64,
    'F64': 64,
    'I64': 64,
    'U64': 64,
}

Buffer = Union[bytes, bytearray, memoryview]


@dataclass(frozen=True)
class TensorInfo:
    """Header description of one tensor."""
    dtype: str
    shape: Tuple[int, ...]
    data_offsets: Tuple[int, int]

    @property
    def num_elements(self) -> int:
        return math.prod(self.shape)

    @property
    def nbytes(self) -> int:
        return self.data_offsets[1] - self.data_offsets[0]

    @classmethod
    def from_json(cls, name: str, info: Any) -> 'TensorInfo':
        """
        Build a TensorInfo from its JSON header entry.

        Args:
            name: Tensor name, used in error messages
            info: Decoded JSON value for the tensor

        Returns:
            Parsed TensorInfo

        Raises:
            HeaderFormatError: If the entry is not a well-formed tensor description
        """
        if not isinstance(info, dict):
            raise HeaderFormatError(f"Tensor {name!r} is not an object")

        dtype = info.get('dtype')
        if not isinstance(dtype, str) or dtype not in DTYPE_BITS:
            raise HeaderFormatError(f"Tensor {name!r} has unknown dtype {dtype!r}")

        shape = info.get('shape')
        if not isinstance(shape, list) or not all(_is_count(dim) for dim in shape):
            raise HeaderFormatError(f"Tensor {name!r} has invalid shape {shape!r}")

        offsets = info.get('data_offsets')
        if (not isinstance(offsets, list) or len(offsets) != 2
                or not all(_is_count(offset) for offset in offsets)):
            raise HeaderFormatError(f"Tensor {name!r} has invalid data_offsets {offsets!r}")

        begin, end = offsets
        if end < begin:
            raise HeaderFormatError(f"Tensor {name!r} ends before it begins")

        return cls(dtype=dtype, shape=tuple(shape), data_offsets=(begin, end))


def _is_count(value: Any) -> bool:
    # bool is an int subclass, JSON true/false are not sizes
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class SafetensorsHeader:
    """
    A validated safetensors header.

    Attributes:
        header_length: Declared JSON header length in bytes
        metadata: The ``__metadata__`` table, or None when the file has none
        raw_tensors: Undecoded JSON entries for every tensor
    """

    def __init__(self, header_length: int, metadata, raw_tensors: Dict[str, Any]):
        self.header_length = header_length
        self.metadata = metadata
        self.raw_tensors = raw_tensors

    @property
    def data_start(self) -> int:
        """Offset of the first tensor byte in the buffer."""
        return self.header_length + 8

    @classmethod
    def parse(cls, buffer: Buffer) -> 'SafetensorsHeader':
        """
        Validate a buffer and return its header.

        Args:
            buffer: Whole-file buffer, tensor bytes may be zero padding

        Returns:
            Validated SafetensorsHeader

        Raises:
            HeaderFormatError: If the buffer breaks any of the format's rules
        """
        buffer_length = len(buffer)
        if buffer_length < 8:
            raise HeaderFormatError("Buffer too small to hold a header length")

        (header_length,) = struct.unpack_from('<Q', buffer, 0)
        if header_length > MAX_HEADER_SIZE:
            raise HeaderFormatError(f"Header too large: {header_length} bytes")

        stop = header_length + 8
        if stop > buffer_length:
            raise HeaderFormatError(
                f"Header length {header_length} does not fit in a {buffer_length} byte buffer"
            )

        try:
            text = bytes(buffer[8:stop]).decode('utf-8')
        except UnicodeDecodeError as e:
            raise HeaderFormatError(f"Header is not valid UTF-8: {e}") from e

        if not text.startswith('{'):
            raise HeaderFormatError("Header does not start with '{'")

        try:
            header = json.loads(text)
        except (json.JSONDecodeError, RecursionError) as e:
            raise HeaderFormatError(f"Header JSON is invalid: {e}") from e

        if not isinstance(header, dict):
            raise HeaderFormatError("Header is not a JSON object")

        metadata = header.pop(METADATA_KEY, None)
        if metadata is not None:
            if not isinstance(metadata, dict) or not all(
                    isinstance(value, str) for value in metadata.values()):
                raise HeaderFormatError("__metadata__ must map strings to strings")

        result = cls(header_length, metadata, header)
        result._validate_offsets(buffer_length - stop)
        return result

    def _validate_offsets(self, data_length: int) -> None:
        """Check tensor ranges tile the data section exactly."""
        infos = [(name, TensorInfo.from_json(name, raw)) for name, raw in self.raw_tensors.items()]
        infos.sort(key=lambda item: item[1].data_offsets)

        position = 0
        for name, info in infos:
            begin, end = info.data_offsets
            if begin != position:
                raise HeaderFormatError(f"Tensor {name!r} starts at {begin}, expected {position}")

            bits = info.num_elements * DTYPE_BITS[info.dtype]
            if bits % 8 != 0 or bits // 8 != info.nbytes:
                raise HeaderFormatError(
                    f"Tensor {name!r} spans {info.nbytes} bytes but its dtype and shape need {bits / 8}"
                )
            position = end

        if position != data_length:
            raise HeaderFormatError(
                f"Tensor data covers {position} bytes but the buffer holds {data_length}"
            )


def deserialize_tensors(header: SafetensorsHeader) -> Dict[str, TensorInfo]:
    """
    Decode every tensor entry of a header.

    Args:
        header: Validated header

    Returns:
        Dictionary of tensor name to TensorInfo

    Raises:
        HeaderFormatError: If any entry is malformed
    """
    return {name: TensorInfo.from_json(name, raw) for name, raw in header.raw_tensors.items()}


def tensor_catalog(header: SafetensorsHeader) -> Tuple[TensorEntry, ...]:
    """
    List tensor names and shapes sorted by name.

    Args:
        header: Validated header

    Returns:
        Tuple of TensorEntry sorted lexicographically by name

    Raises:
        HeaderFormatError: If any entry is malformed
    """
    tensors = deserialize_tensors(header)
    return tuple(TensorEntry(name, tensors[name].shape) for name in sorted(tensors))
