"""
Tests for the configuration.
"""
import typing

import pytest

from lora_inspector.analyzers.classifier import DEFAULT_RULES, RuleSet
from lora_inspector.config import InspectorConfig, DEFAULT_MAX_HEADER_SIZE
from lora_inspector.utils.progress import ProgressConfig, ProgressFormat


class TestInspectorConfig:
    """Tests for InspectorConfig."""

    def test_default_config(self):
        """Test default configuration values."""
        config = InspectorConfig()

        assert config.max_header_size == DEFAULT_MAX_HEADER_SIZE == 100 * 1024 * 1024
        assert config.tag_frequency_key == 'ss_tag_frequency'
        assert config.base_model_key == 'ss_sd_model_name'
        assert config.extensions == {'.safetensors'}
        assert config.recursive is False
        assert config.exclude_patterns == []
        assert config.rules is DEFAULT_RULES
        assert config.show_progress is False

    def test_custom_rules(self):
        rules = RuleSet([])
        assert InspectorConfig(rules=rules).rules is rules

    def test_extension_normalization(self):
        config = InspectorConfig(extensions={'SAFETENSORS', '.Ckpt'})
        assert config.extensions == {'.safetensors', '.ckpt'}
        assert config.is_extension_enabled('safetensors')
        assert config.is_extension_enabled('.CKPT')
        assert not config.is_extension_enabled('.pt')

    @pytest.mark.parametrize("kwargs", [
        {'max_header_size': 8},
        {'max_header_size': 0},
        {'tag_frequency_key': ''},
        {'base_model_key': ''},
        {'extensions': set()},
        {'progress_format': 'spinner'},
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            InspectorConfig(**kwargs)

    def test_get_progress_config(self):
        progress = InspectorConfig(progress_format='PLAIN').get_progress_config()
        assert isinstance(progress, ProgressConfig)
        assert progress.format == ProgressFormat.PLAIN

        assert InspectorConfig().get_progress_config().format == ProgressFormat.BAR

    def test_type_hints_resolve(self):
        """Forward references name classes importable from their modules."""
        hints = typing.get_type_hints(
            InspectorConfig,
            localns={'RuleSet': RuleSet, 'ProgressConfig': ProgressConfig}
        )
        assert hints['rules'] == typing.Optional[RuleSet]

        hints = typing.get_type_hints(
            InspectorConfig.get_progress_config,
            localns={'ProgressConfig': ProgressConfig}
        )
        assert hints['return'] is ProgressConfig
