from pathlib import Path
from typing import Set, Optional, List, Union
import os
import fnmatch
import logging

logger = logging.getLogger(__name__)


def get_file_extension(file_path: Union[str, Path]) -> str:
    """
    Get the extension of a file (lowercase with dot).

    Args:
        file_path: Path to the file

    Returns:
        Lowercase extension with dot
    """
    return Path(file_path).suffix.lower()


def scan_directory(
        directory: Union[str, Path],
        extensions: Optional[Set[str]] = None,
        recursive: bool = False,
        exclude_patterns: Optional[List[str]] = None
) -> List[str]:
    """
    List files in a directory, sorted by path.

    Args:
        directory: Directory to scan
        extensions: Lowercase extensions (with dot) to keep, None keeps everything
        recursive: Descend into subdirectories
        exclude_patterns: fnmatch patterns, matched against the path relative to directory

    Returns:
        Sorted list of matching file paths

    Raises:
        FileNotFoundError: If the directory does not exist
        NotADirectoryError: If the path is not a directory
    """
    directory_path = Path(directory)

    if not directory_path.exists():
        raise FileNotFoundError(f"Directory not found: {directory}")

    if not directory_path.is_dir():
        raise NotADirectoryError(f"Path is not a directory: {directory}")

    def is_excluded(file_path: Path) -> bool:
        rel_path = file_path.relative_to(directory_path).as_posix()
        return any(fnmatch.fnmatch(rel_path, pattern) for pattern in exclude_patterns or ())

    matching_files = []
    for root, dirnames, filenames in os.walk(directory_path):
        if not recursive:
            dirnames.clear()

        for filename in filenames:
            file_path = Path(root) / filename

            if extensions and file_path.suffix.lower() not in extensions:
                continue

            if is_excluded(file_path):
                continue

            try:
                if not file_path.is_file():
                    continue
            except OSError as e:
                logger.warning(f"Error accessing file {file_path}: {e}")
                continue

            matching_files.append(str(file_path))

    matching_files.sort()
    return matching_files
