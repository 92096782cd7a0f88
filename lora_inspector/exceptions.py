class LoraInspectorError(Exception):
    """Base exception for all LoRA inspector errors."""
    pass


class InvalidHeaderError(LoraInspectorError):
    """Raised when a file's header length prefix is missing, truncated or overflows."""
    pass


class HeaderTooLargeError(LoraInspectorError):
    """Raised when a file declares a header larger than the allowed bound."""
    pass


class HeaderFormatError(LoraInspectorError):
    """Raised when a header buffer violates the safetensors framing rules."""
    pass


class TagFrequencyError(LoraInspectorError):
    """Raised when the tag frequency metadata is not an object of objects of numbers."""
    pass
