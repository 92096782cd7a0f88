"""
Tests for the utility functions in the lora_inspector library.
"""
import io
import os
from pathlib import Path

import pytest

from lora_inspector.models.record import MetadataRecord
from lora_inspector.utils.file_utils import get_file_extension, scan_directory
from lora_inspector.utils.filtering import SearchResult, match_record, search_records
from lora_inspector.utils.progress import (
    ProgressCallback, ProgressConfig, ProgressFormat, format_time, progress_iterator
)


class FakeEntry:
    """Minimal stand-in for LazyRecord."""

    def __init__(self, path, record):
        self.path = path
        self.record = record
        self.loaded = False

    def get(self):
        self.loaded = True
        return self.record


def tagged(*tags):
    return MetadataRecord(tag_frequencies=tuple((tag, 1.0) for tag in tags))


class TestFileUtils:
    """Tests for file utility functions."""

    def test_get_file_extension(self):
        """Test getting file extensions."""
        assert get_file_extension('model.safetensors') == '.safetensors'
        assert get_file_extension('MODEL.SafeTensors') == '.safetensors'  # Check case insensitive
        assert get_file_extension('/path/to/model.ckpt') == '.ckpt'
        assert get_file_extension('/path/to/model') == ''
        assert get_file_extension('model.v2.safetensors') == '.safetensors'  # Last extension only

    def test_scan_directory(self, temp_dir):
        """Test scanning directories for files."""
        main_dir = Path(temp_dir) / "main"
        sub_dir = main_dir / "sub"
        os.makedirs(sub_dir)

        for file_path in [main_dir / "b.safetensors", main_dir / "a.safetensors",
                          main_dir / "notes.txt", sub_dir / "c.safetensors"]:
            file_path.write_bytes(b'')

        # Non-recursive by default, sorted by path
        assert scan_directory(main_dir) == [
            str(main_dir / "a.safetensors"),
            str(main_dir / "b.safetensors"),
            str(main_dir / "notes.txt"),
        ]

        # Extension filter
        assert scan_directory(main_dir, extensions={'.safetensors'}) == [
            str(main_dir / "a.safetensors"),
            str(main_dir / "b.safetensors"),
        ]

        # Recursive
        result = scan_directory(main_dir, extensions={'.safetensors'}, recursive=True)
        assert str(sub_dir / "c.safetensors") in result
        assert len(result) == 3

        # Exclusions match the relative path
        result = scan_directory(main_dir, extensions={'.safetensors'}, recursive=True,
                                exclude_patterns=['sub/*', 'a.*'])
        assert result == [str(main_dir / "b.safetensors")]

    def test_extension_is_case_insensitive(self, temp_dir):
        (Path(temp_dir) / "UPPER.SAFETENSORS").write_bytes(b'')
        assert len(scan_directory(temp_dir, extensions={'.safetensors'})) == 1

    def test_directories_are_not_files(self, temp_dir):
        os.makedirs(Path(temp_dir) / "folder.safetensors")
        assert scan_directory(temp_dir, extensions={'.safetensors'}, recursive=True) == []

    def test_scan_missing_directory(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            scan_directory(Path(temp_dir) / "missing")

    def test_scan_file(self, temp_dir):
        file_path = Path(temp_dir) / "model.safetensors"
        file_path.write_bytes(b'')
        with pytest.raises(NotADirectoryError):
            scan_directory(file_path)


class TestFiltering:
    """Tests for search matching."""

    def test_name_match(self):
        assert match_record("/loras/Cute_Style.safetensors", MetadataRecord(), "cute") == SearchResult.NAME

    def test_tag_match(self):
        record = tagged("red hair", "smile")
        assert match_record("/loras/x.safetensors", record, "RED") == SearchResult.TAG

    def test_name_beats_tag(self):
        record = tagged("style")
        assert match_record("/loras/style.safetensors", record, "style") == SearchResult.NAME

    def test_directories_are_not_searched(self):
        assert match_record("/style/x.safetensors", MetadataRecord(), "style") == SearchResult.NO_MATCH

    def test_no_match(self):
        record = tagged("smile")
        assert match_record("/loras/x.safetensors", record, "frown") == SearchResult.NO_MATCH

    def test_empty_text_matches_every_name(self):
        assert match_record("/loras/x.safetensors", MetadataRecord(), "") == SearchResult.NAME

    def test_search_records_keeps_order(self):
        entries = [
            FakeEntry("/a/watercolor.safetensors", tagged()),
            FakeEntry("/a/other.safetensors", tagged("watercolor")),
            FakeEntry("/a/none.safetensors", tagged("ink")),
        ]
        assert search_records(entries, "Water") == [
            SearchResult.NAME, SearchResult.TAG, SearchResult.NO_MATCH
        ]
        assert all(entry.loaded for entry in entries)


class TestProgress:
    """Tests for progress reporting."""

    def test_format_time(self):
        assert format_time(5.0) == "5.0s"
        assert format_time(125) == "2m 5s"
        assert format_time(7320) == "2h 2m"

    def test_progress_iterator_yields_all_items(self):
        stream = io.StringIO()
        config = ProgressConfig(format=ProgressFormat.PLAIN, output_stream=stream)

        assert list(progress_iterator([1, 2, 3], desc="Reading", config=config)) == [1, 2, 3]
        output = stream.getvalue()
        assert "Reading: 3/3" in output
        assert "100.0%" in output

    def test_progress_bar(self):
        stream = io.StringIO()
        config = ProgressConfig(format=ProgressFormat.BAR, width=10, refresh_rate=0, output_stream=stream)

        list(progress_iterator(range(4), config=config))

        output = stream.getvalue()
        assert "|" + "█" * 10 + "|" in output
        assert output.endswith("\n")

    def test_progress_without_total(self):
        stream = io.StringIO()
        config = ProgressConfig(format=ProgressFormat.PLAIN, output_stream=stream)

        list(progress_iterator(iter("ab"), config=config))

        assert "2 items" in stream.getvalue()

    def test_disabled_progress(self):
        stream = io.StringIO()
        config = ProgressConfig(output_stream=stream)

        assert list(progress_iterator([1, 2], config=config, disable=True)) == [1, 2]
        assert stream.getvalue() == ""

    def test_default_stream_is_stderr(self):
        import sys
        assert ProgressConfig().output_stream is sys.stderr

    def test_progress_callback(self):
        events = []
        callback = ProgressCallback(
            on_start=lambda total: events.append(('start', total)),
            on_progress=lambda current, total, info: events.append(('progress', current, total)),
            on_complete=lambda total: events.append(('complete', total)),
            on_error=lambda e: events.append(('error', str(e))),
        )

        callback.start(2)
        callback.progress(1, 2)
        callback.error(ValueError("boom"))
        callback.progress(2, 2)
        callback.complete(2)

        assert events == [
            ('start', 2), ('progress', 1, 2), ('error', 'boom'), ('progress', 2, 2), ('complete', 2)
        ]

    def test_progress_callback_throttling(self):
        """Intermediate updates are throttled, first and last always arrive."""
        calls = []
        callback = ProgressCallback(
            on_progress=lambda current, total, info: calls.append((current, info)),
            throttle_ms=60_000
        )

        callback.start(5)
        for i in range(1, 6):
            callback.progress(i, 5)

        assert [current for current, _ in calls] == [1, 5]
        assert calls[-1][1]['percentage'] == 100.0
        assert 'elapsed_formatted' in calls[0][1]

    def test_progress_callback_without_hooks(self):
        callback = ProgressCallback()
        callback.start(1)
        callback.progress(1, 1)
        callback.error(RuntimeError("ignored"))
        callback.complete(1)
