"""
Extraction and classification of safetensors header data.
"""

from .header_reader import read_header
from .safetensors import SafetensorsHeader, TensorInfo, tensor_catalog
from .tag_frequency import aggregate_tag_frequencies, parse_tag_frequencies
from .classifier import (
    BaseRule, PrefixRule, AdapterRule, RuleSet, DEFAULT_RULES, classify
)
from .record_builder import build_record

__all__ = [
    'read_header',
    'SafetensorsHeader',
    'TensorInfo',
    'tensor_catalog',
    'aggregate_tag_frequencies',
    'parse_tag_frequencies',
    'BaseRule',
    'PrefixRule',
    'AdapterRule',
    'RuleSet',
    'DEFAULT_RULES',
    'classify',
    'build_record',
]
