"""
Search example for the lora_inspector library.

This script loads the records of a directory on a background thread and
searches them by file name and training tag while showing progress.
"""
import os
import sys
from pathlib import Path

# Add the parent directory to the path so we can import the library
sys.path.insert(0, str(Path(__file__).parent.parent))

from lora_inspector import LoraInspector, SearchResult
from lora_inspector.utils.progress import ProgressCallback


def main(directory=None, text=""):
    """Run the search example."""
    # Use current directory if none provided
    if directory is None:
        directory = os.getcwd()

    inspector = LoraInspector()
    entries = inspector.scan(directory)
    print(f"Searching {len(entries)} files in {directory} for {text!r}")

    callback = ProgressCallback(
        on_progress=lambda current, total, info: print(
            f"\r  loaded {current}/{total} ({info['elapsed_formatted']})", end="", flush=True
        ),
        on_complete=lambda total: print(),
        on_error=lambda e: print(f"\n  error: {e}"),
        throttle_ms=100
    )

    # Warm the records in the background, search() forces whatever is left
    with inspector.background_loader(callback) as loader:
        loader.submit(entries)
        loader.wait()

    results = inspector.search(entries, text)

    for match in (SearchResult.NAME, SearchResult.TAG):
        names = [entry.name for entry, result in zip(entries, results) if result == match]
        print(f"\nMatched by {match.value} ({len(names)}):")
        for name in names:
            print(f"  - {name}")


if __name__ == "__main__":
    directory = sys.argv[1] if len(sys.argv) > 1 else None
    text = sys.argv[2] if len(sys.argv) > 2 else ""
    main(directory, text)
