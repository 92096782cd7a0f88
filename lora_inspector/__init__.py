# lora_inspector/__init__.py
from .inspector import LoraInspector
from .models.record import MetadataRecord, TensorEntry
from .models.model_type import (
    Checkpoint, Adapter, Vae,
    Architecture, NetworkTarget, AdapterTechnique, VaeKind
)
from .analyzers import read_header, build_record, aggregate_tag_frequencies, classify
from .utils.background import LazyRecord, BackgroundLoader
from .utils.filtering import SearchResult
from .config import InspectorConfig
from .exceptions import *

__version__ = "0.1.0"
