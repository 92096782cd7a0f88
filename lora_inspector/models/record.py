# lora_inspector/models/record.py
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Tuple, List

from .model_type import ModelType

UNKNOWN_BASE_MODEL = "Unknown"


@dataclass(frozen=True)
class TensorEntry:
    """Name and shape of a single tensor."""
    name: str
    shape: Tuple[int, ...]

    def __str__(self) -> str:
        return f"{self.name}: {', '.join(str(dim) for dim in self.shape)}"


@dataclass(frozen=True)
class MetadataRecord:
    """
    Everything extracted from one safetensors file.

    The record is built once per load and never modified afterwards. The
    default instance is the empty record used whenever nothing could be read.
    """
    raw_metadata: Dict[str, str] = field(default_factory=dict)
    tag_frequencies: Tuple[Tuple[str, float], ...] = ()
    base_model: Optional[str] = None
    tensors: Tuple[TensorEntry, ...] = ()
    model_types: Tuple[ModelType, ...] = ()

    @property
    def base_model_display(self) -> str:
        """Base checkpoint name, or "Unknown" when the file doesn't say."""
        return self.base_model if self.base_model is not None else UNKNOWN_BASE_MODEL

    @property
    def tags(self) -> List[str]:
        """Tag strings in frequency order."""
        return [tag for tag, _ in self.tag_frequencies]

    @property
    def is_empty(self) -> bool:
        """Return True if no field carries any data."""
        return self == MetadataRecord()

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert the record to plain JSON-compatible types.

        Returns:
            Dictionary with the same fields, tags rendered as strings
        """
        return {
            'raw_metadata': dict(sorted(self.raw_metadata.items())),
            'tag_frequencies': [[tag, weight] for tag, weight in self.tag_frequencies],
            'base_model': self.base_model,
            'tensors': [{'name': t.name, 'shape': list(t.shape)} for t in self.tensors],
            'model_types': [str(model_type) for model_type in self.model_types],
        }

    def __str__(self) -> str:
        types = ", ".join(str(model_type) for model_type in self.model_types) or "Unknown"
        return f"{types} (base: {self.base_model_display}, {len(self.tensors)} tensors)"
