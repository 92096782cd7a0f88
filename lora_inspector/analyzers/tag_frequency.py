"""
Aggregation of kohya-style tag frequency metadata.

Training scripts store ``ss_tag_frequency`` as a JSON string shaped like
``{"<dataset dir>": {"<tag>": <count>, ...}, ...}``. The directory level is
irrelevant for display, so counts are summed per tag across all groups.
"""
import json
import logging
import math
from collections import defaultdict
from typing import Dict, Mapping, Tuple

from ..config import TAG_FREQUENCY_KEY
from ..exceptions import TagFrequencyError

logger = logging.getLogger(__name__)

TagFrequencies = Tuple[Tuple[str, float], ...]


def _weight(tag: str, value) -> float:
    # JSON booleans decode to bool, which is an int subclass
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TagFrequencyError(f"Weight for tag {tag!r} is not a number: {value!r}")
    try:
        weight = float(value)
    except OverflowError as e:
        raise TagFrequencyError(f"Weight for tag {tag!r} is out of range") from e
    if not math.isfinite(weight) or weight < 0:
        raise TagFrequencyError(f"Weight for tag {tag!r} is not a non-negative number: {value!r}")
    return weight


def parse_tag_frequencies(value: str) -> TagFrequencies:
    """
    Parse and sum a tag frequency JSON string.

    Args:
        value: JSON text, an object of objects of numbers

    Returns:
        (tag, total weight) pairs sorted by weight, heaviest first

    Raises:
        TagFrequencyError: If the text is not JSON of the expected shape
    """
    try:
        groups = json.loads(value)
    except (TypeError, ValueError, RecursionError) as e:
        raise TagFrequencyError(f"Tag frequencies are not valid JSON: {e}") from e

    if not isinstance(groups, dict):
        raise TagFrequencyError("Tag frequencies are not a JSON object")

    totals: Dict[str, float] = defaultdict(float)
    for group, tags in groups.items():
        if not isinstance(tags, dict):
            raise TagFrequencyError(f"Tag group {group!r} is not a JSON object")
        for tag, count in tags.items():
            totals[tag] += _weight(tag, count)

    return tuple(sorted(totals.items(), key=lambda item: item[1], reverse=True))


def aggregate_tag_frequencies(
        metadata: Mapping[str, str],
        key: str = TAG_FREQUENCY_KEY
) -> TagFrequencies:
    """
    Aggregate tag frequencies from a metadata table.

    A missing key or malformed value is not an error, it simply means the
    file carries no usable tags.

    Args:
        metadata: Header metadata table
        key: Metadata key holding the tag frequency JSON

    Returns:
        (tag, total weight) pairs sorted by weight, heaviest first, or () if unavailable
    """
    value = metadata.get(key)
    if value is None:
        return ()

    try:
        return parse_tag_frequencies(value)
    except TagFrequencyError as e:
        logger.debug(f"Ignoring tag frequencies: {e}")
        return ()
