"""
Tests for the exception hierarchy.
"""
import pytest

from lora_inspector.exceptions import (
    LoraInspectorError, InvalidHeaderError, HeaderTooLargeError,
    HeaderFormatError, TagFrequencyError
)


class TestExceptions:
    """Tests for exception classes."""

    def test_exception_hierarchy(self):
        """Every error derives from LoraInspectorError."""
        for error_class in (InvalidHeaderError, HeaderTooLargeError, HeaderFormatError, TagFrequencyError):
            assert issubclass(error_class, LoraInspectorError)
            assert issubclass(error_class, Exception)

    def test_hard_failures_are_distinct(self):
        assert not issubclass(HeaderTooLargeError, InvalidHeaderError)
        assert not issubclass(InvalidHeaderError, HeaderTooLargeError)

    def test_not_os_errors(self):
        """I/O failures and header failures can be told apart."""
        assert not issubclass(LoraInspectorError, OSError)

    def test_exception_usage(self):
        with pytest.raises(LoraInspectorError) as excinfo:
            raise HeaderTooLargeError("Header too large: 104857600 bytes")
        assert "104857600" in str(excinfo.value)

    def test_exported_from_package(self):
        import lora_inspector
        assert lora_inspector.InvalidHeaderError is InvalidHeaderError
        assert lora_inspector.LoraInspectorError is LoraInspectorError
