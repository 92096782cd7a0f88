from dataclasses import dataclass, field
from typing import Set, Optional, List, TYPE_CHECKING

if TYPE_CHECKING:
    from .analyzers.classifier import RuleSet
    from .utils.progress import ProgressConfig

DEFAULT_MAX_HEADER_SIZE = 100 * 2 ** 20
TAG_FREQUENCY_KEY = 'ss_tag_frequency'
BASE_MODEL_KEY = 'ss_sd_model_name'


@dataclass
class InspectorConfig:
    """Configuration for the LoraInspector."""

    # Header reading
    max_header_size: int = DEFAULT_MAX_HEADER_SIZE

    # Well-known metadata keys
    tag_frequency_key: str = TAG_FREQUENCY_KEY
    base_model_key: str = BASE_MODEL_KEY

    # Directory scanning
    extensions: Set[str] = field(default_factory=lambda: {'.safetensors'})
    recursive: bool = False
    exclude_patterns: List[str] = field(default_factory=list)

    # Classification rules, None means the built-in table
    rules: Optional['RuleSet'] = None

    # Progress reporting
    progress_format: str = 'bar'  # 'bar', 'plain'
    show_progress: bool = False

    def __post_init__(self):
        """Validate configuration after initialization."""
        if self.max_header_size <= 8:
            raise ValueError("max_header_size must be larger than the 8 byte length prefix")

        if not self.tag_frequency_key or not self.base_model_key:
            raise ValueError("metadata keys cannot be empty")

        if not self.extensions:
            raise ValueError("at least one extension is required")

        if self.progress_format.lower() not in ('bar', 'plain'):
            raise ValueError(f"Invalid progress format: {self.progress_format}")

        # Normalize extensions
        self.extensions = {
            (ext if ext.startswith('.') else f'.{ext}').lower()
            for ext in self.extensions
        }

        if self.rules is None:
            from .analyzers.classifier import DEFAULT_RULES
            self.rules = DEFAULT_RULES

    def is_extension_enabled(self, ext: str) -> bool:
        """
        Check if files with this extension should be scanned.

        Args:
            ext: File extension to check, with or without the dot

        Returns:
            True if the extension is enabled, False otherwise
        """
        if not ext.startswith('.'):
            ext = f'.{ext}'
        return ext.lower() in self.extensions

    def get_progress_config(self) -> 'ProgressConfig':
        """
        Get a ProgressConfig object from this configuration.

        Returns:
            ProgressConfig object
        """
        from .utils.progress import ProgressConfig, ProgressFormat

        return ProgressConfig(format=ProgressFormat(self.progress_format.lower()))
