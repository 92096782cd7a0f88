"""
Assembly of MetadataRecord objects from header buffers.

Building a record never fails. Whatever part of a header can't be read
falls back to that field's empty value, and a buffer that fails validation
as a whole produces the empty record.
"""
import logging
from typing import Optional, Tuple

from ..config import InspectorConfig
from ..exceptions import HeaderFormatError
from ..models.record import MetadataRecord, TensorEntry
from .classifier import RuleSet, classify
from .safetensors import SafetensorsHeader, Buffer, tensor_catalog
from .tag_frequency import aggregate_tag_frequencies

logger = logging.getLogger(__name__)


def _catalog(header: SafetensorsHeader) -> Tuple[TensorEntry, ...]:
    try:
        return tensor_catalog(header)
    except HeaderFormatError as e:
        logger.warning(f"Could not read tensor table: {e}")
        return ()


def build_record(
        buffer: Buffer,
        rules: Optional[RuleSet] = None,
        config: Optional[InspectorConfig] = None
) -> MetadataRecord:
    """
    Extract a MetadataRecord from a header buffer.

    Args:
        buffer: Whole-file buffer as returned by read_header
        rules: Classification table, defaults to the config's rules
        config: Configuration providing the well-known metadata keys

    Returns:
        The extracted record, or the empty record if the buffer is not a valid header
    """
    config = config or InspectorConfig()
    if rules is None:
        rules = config.rules

    try:
        header = SafetensorsHeader.parse(buffer)
    except HeaderFormatError as e:
        logger.warning(f"Invalid safetensors header: {e}")
        return MetadataRecord()

    raw_metadata = dict(header.metadata or {})
    tensors = _catalog(header)

    return MetadataRecord(
        raw_metadata=raw_metadata,
        tag_frequencies=aggregate_tag_frequencies(raw_metadata, config.tag_frequency_key),
        base_model=raw_metadata.get(config.base_model_key),
        tensors=tensors,
        model_types=classify(tensors, rules),
    )
