from enum import Enum
from pathlib import Path
from typing import Iterable, List, Union, TYPE_CHECKING

from ..models.record import MetadataRecord

if TYPE_CHECKING:
    from .background import LazyRecord


class SearchResult(Enum):
    """How a file matched a search."""
    NO_MATCH = 'no_match'
    NAME = 'name'  # File name contains the search text
    TAG = 'tag'  # One of the training tags contains the search text


def match_record(path: Union[str, Path], record: MetadataRecord, text: str) -> SearchResult:
    """
    Match one file against a case-insensitive search text.

    The file name takes precedence over tags, so a file whose name and tags
    both match reports NAME.

    Args:
        path: Path of the file
        record: Record extracted from the file
        text: Text to look for

    Returns:
        SearchResult for the file
    """
    needle = text.lower()
    if needle in Path(path).name.lower():
        return SearchResult.NAME
    if any(needle in tag.lower() for tag in record.tags):
        return SearchResult.TAG
    return SearchResult.NO_MATCH


def search_records(entries: Iterable['LazyRecord'], text: str) -> List[SearchResult]:
    """
    Match a list of lazily loaded files against a search text.

    Args:
        entries: LazyRecord objects, loaded on demand
        text: Text to look for

    Returns:
        One SearchResult per entry, in the same order
    """
    return [match_record(entry.path, entry.get(), text) for entry in entries]
