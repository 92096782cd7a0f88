from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional, List, Iterable, Union

from .config import InspectorConfig
from .exceptions import LoraInspectorError
from .models.record import MetadataRecord
from .analyzers.header_reader import read_header
from .analyzers.record_builder import build_record
from .utils.background import LazyRecord, BackgroundLoader
from .utils.file_utils import scan_directory
from .utils.filtering import SearchResult, search_records
from .utils.progress import ProgressCallback, progress_iterator


class LoraInspector:
    """
    Reads training metadata and model types from safetensors files.

    This is the entry point a viewer talks to: it turns a path into a
    MetadataRecord, lists the safetensors files of a directory and searches
    them by file name or training tag.

    Attributes:
        config (InspectorConfig): Configuration for the inspector.
    """

    def __init__(self, config: Optional[InspectorConfig] = None):
        """
        Initialize the LoraInspector.

        Args:
            config: Configuration for the inspector
        """
        self.config = config or InspectorConfig()
        self.logger = logging.getLogger(__name__)

    def inspect(self, path: Union[str, Path]) -> MetadataRecord:
        """
        Read a safetensors file and extract its record.

        Args:
            path: Path to the safetensors file

        Returns:
            MetadataRecord for the file, fields the header doesn't provide are empty

        Raises:
            FileNotFoundError: If the file does not exist
            OSError: If the file cannot be read
            InvalidHeaderError: If the header length prefix is unusable
            HeaderTooLargeError: If the declared header exceeds config.max_header_size
        """
        buffer = read_header(path, self.config.max_header_size)
        record = build_record(buffer, config=self.config)
        self.logger.debug(f"Inspected {path}: {record}")
        return record

    def load(self, path: Union[str, Path]) -> MetadataRecord:
        """
        Like inspect(), but a file that can't be read yields the empty record.

        Args:
            path: Path to the safetensors file

        Returns:
            MetadataRecord for the file, empty if it could not be loaded
        """
        try:
            return self.inspect(path)
        except (OSError, LoraInspectorError) as e:
            self.logger.warning(f"Could not load {path}: {e}")
            return MetadataRecord()

    def lazy_record(self, path: Union[str, Path]) -> LazyRecord:
        """
        Create a record for path that is read on first access.

        Args:
            path: Path to the safetensors file

        Returns:
            LazyRecord bound to this inspector
        """
        return LazyRecord(path, self.inspect)

    def directory_files(self, directory: Union[str, Path]) -> List[str]:
        """
        List the safetensors files of a directory.

        Args:
            directory: Directory to scan

        Returns:
            Paths sorted by name, filtered by config.extensions
        """
        return scan_directory(
            directory,
            extensions=self.config.extensions,
            recursive=self.config.recursive,
            exclude_patterns=self.config.exclude_patterns
        )

    def scan(self, path: Union[str, Path]) -> List[LazyRecord]:
        """
        Create lazy records for a file or for every safetensors file of a directory.

        Args:
            path: File or directory

        Returns:
            One record for a file, sorted records for a directory, [] otherwise
        """
        path = Path(path)
        if path.is_file():
            return [self.lazy_record(path)]

        if path.is_dir():
            try:
                files = self.directory_files(path)
            except OSError as e:
                self.logger.warning(f"Could not scan {path}: {e}")
                return []
            return [self.lazy_record(file_path) for file_path in files]

        self.logger.warning(f"Not a file or directory: {path}")
        return []

    def load_all(self, entries: Iterable[LazyRecord], show_progress: Optional[bool] = None) -> List[MetadataRecord]:
        """
        Force a list of lazy records in the calling thread.

        Args:
            entries: Records to load
            show_progress: Print progress to the console, defaults to config.show_progress

        Returns:
            The loaded records in order
        """
        if show_progress is None:
            show_progress = self.config.show_progress

        entries = list(entries)
        if show_progress:
            entries = progress_iterator(
                entries,
                desc="Reading headers",
                config=self.config.get_progress_config()
            )
        return [entry.get() for entry in entries]

    def background_loader(self, callback: Optional[ProgressCallback] = None) -> BackgroundLoader:
        """
        Start a worker thread for loading batches of lazy records.

        Args:
            callback: Progress hooks, called from the worker thread

        Returns:
            Running BackgroundLoader, close it when done
        """
        return BackgroundLoader(callback=callback)

    @staticmethod
    def search(entries: Iterable[LazyRecord], text: str) -> List[SearchResult]:
        """
        Match records against a search text by file name, then by training tag.

        Args:
            entries: Records to search, loaded on demand
            text: Case-insensitive search text

        Returns:
            One SearchResult per entry
        """
        return search_records(entries, text)
