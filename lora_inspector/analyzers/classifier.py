"""
Rule based classification of safetensors tensor tables.

Each tensor name is matched against an ordered table of rules and the first
rule that recognises it contributes one model type tag. Checkpoint, VAE and
adapter rules use disjoint name prefixes, so the order only matters between
rules of the same family.

The table is plain data. The rules here follow the naming used by the
original Stable Diffusion checkpoints and by kohya-ss/LyCORIS adapter
trainers; other conventions can be supported by building a different
``RuleSet`` and passing it through ``InspectorConfig.rules``.
"""
from abc import ABC, abstractmethod
from dataclasses import dataclass
import logging
from typing import Iterable, Optional, Sequence, Set, Tuple, Union

from ..models.model_type import (
    ModelType, Checkpoint, Adapter, Vae,
    Architecture, NetworkTarget, AdapterTechnique, VaeKind
)
from ..models.record import TensorEntry

logger = logging.getLogger(__name__)

Shape = Sequence[int]
TensorLike = Union[TensorEntry, Tuple[str, Shape]]


class BaseRule(ABC):
    """A single entry of the classification table."""

    @abstractmethod
    def tag_for(self, name: str, shape: Shape) -> Optional[ModelType]:
        """
        Classify one tensor.

        Args:
            name: Tensor name
            shape: Tensor shape

        Returns:
            The tag this rule assigns, or None if the rule doesn't apply
        """
        pass


@dataclass(frozen=True)
class PrefixRule(BaseRule):
    """
    Assign a fixed tag to tensors whose name starts with a prefix.

    ``rank``, when set, additionally requires the shape to have exactly that
    many dimensions. ``first_dim`` does the same for the size of dimension 0.
    """
    prefix: str
    tag: ModelType
    rank: Optional[int] = None
    first_dim: Optional[int] = None

    def tag_for(self, name: str, shape: Shape) -> Optional[ModelType]:
        if not name.startswith(self.prefix):
            return None
        if self.rank is not None and len(shape) != self.rank:
            return None
        if self.first_dim is not None and (not shape or shape[0] != self.first_dim):
            return None
        return self.tag


@dataclass(frozen=True)
class AdapterRule(BaseRule):
    """
    Combine a name prefix (network target) and suffix (technique) into an adapter tag.

    Both lists are searched in order, so longer prefixes that share a start
    with shorter ones must come first.
    """
    targets: Tuple[Tuple[str, NetworkTarget], ...]
    techniques: Tuple[Tuple[str, AdapterTechnique], ...]

    def target_for(self, name: str) -> Optional[NetworkTarget]:
        for prefix, target in self.targets:
            if name.startswith(prefix):
                return target
        return None

    def technique_for(self, name: str) -> Optional[AdapterTechnique]:
        for suffix, technique in self.techniques:
            if name.endswith(suffix):
                return technique
        return None

    def tag_for(self, name: str, shape: Shape) -> Optional[ModelType]:
        target = self.target_for(name)
        if target is None:
            return None
        technique = self.technique_for(name)
        if technique is None:
            return None
        return Adapter(target, technique)


class RuleSet:
    """An ordered classification table where the first matching rule wins."""

    def __init__(self, rules: Iterable[BaseRule]):
        self.rules: Tuple[BaseRule, ...] = tuple(rules)

    def tag_for(self, name: str, shape: Shape) -> Optional[ModelType]:
        """Return the tag of the first rule that matches, if any."""
        for rule in self.rules:
            tag = rule.tag_for(name, shape)
            if tag is not None:
                return tag
        return None

    def extended(self, rules: Iterable[BaseRule], first: bool = True) -> 'RuleSet':
        """
        Build a new RuleSet with extra rules.

        Args:
            rules: Rules to add
            first: Put the new rules ahead of the existing ones

        Returns:
            New RuleSet, this one is left unchanged
        """
        rules = tuple(rules)
        return RuleSet(rules + self.rules if first else self.rules + rules)

    def __len__(self) -> int:
        return len(self.rules)


KOHYA_TARGETS = (
    ('lora_te1_', NetworkTarget.TEXT_ENCODER_1),
    ('lora_te2_', NetworkTarget.TEXT_ENCODER_2),
    ('lora_te_', NetworkTarget.TEXT_ENCODER_1),
    # Flux adapters reuse the lora_unet_ prefix for their DiT blocks
    ('lora_unet_double_blocks_', NetworkTarget.TRANSFORMER),
    ('lora_unet_single_blocks_', NetworkTarget.TRANSFORMER),
    ('lora_transformer_', NetworkTarget.TRANSFORMER),
    ('lora_unet_', NetworkTarget.UNET),
)

KOHYA_TECHNIQUES = (
    ('.lora_down.weight', AdapterTechnique.LORA),
    ('.lora_up.weight', AdapterTechnique.LORA),
    ('.lora_mid.weight', AdapterTechnique.LORA),
    ('.dora_scale', AdapterTechnique.DORA),
    ('.hada_w1_a', AdapterTechnique.LOHA),
    ('.hada_w1_b', AdapterTechnique.LOHA),
    ('.hada_w2_a', AdapterTechnique.LOHA),
    ('.hada_w2_b', AdapterTechnique.LOHA),
    ('.hada_t1', AdapterTechnique.LOHA),
    ('.hada_t2', AdapterTechnique.LOHA),
    ('.lokr_w1', AdapterTechnique.LOKR),
    ('.lokr_w2', AdapterTechnique.LOKR),
    ('.lokr_w1_a', AdapterTechnique.LOKR),
    ('.lokr_w1_b', AdapterTechnique.LOKR),
    ('.lokr_w2_a', AdapterTechnique.LOKR),
    ('.lokr_w2_b', AdapterTechnique.LOKR),
    ('.lokr_t2', AdapterTechnique.LOKR),
)

DEFAULT_RULES = RuleSet([
    PrefixRule('cond_stage_model.transformer.text_model.', Checkpoint(Architecture.SD)),
    PrefixRule('cond_stage_model.model.transformer.', Checkpoint(Architecture.SD)),
    PrefixRule('conditioner.embedders.', Checkpoint(Architecture.SDXL)),
    # T5 encoders also use "encoder.", but only VAEs carry 4D conv weights there
    PrefixRule('encoder.', Vae(VaeKind.STANDALONE), rank=4),
    PrefixRule('first_stage_model.', Vae(VaeKind.BAKED)),
    AdapterRule(KOHYA_TARGETS, KOHYA_TECHNIQUES),
])


def _unpack(tensor: TensorLike) -> Tuple[str, Shape]:
    if isinstance(tensor, TensorEntry):
        return tensor.name, tensor.shape
    name, shape = tensor
    return name, shape


def remove_superseded(tags: Set[ModelType]) -> Set[ModelType]:
    """
    Drop LoRA tags that are part of a DoRA adapter for the same target.

    A DoRA adapter contains the same down/up matrices as a LoRA plus a
    magnitude vector, so its LoRA tensors must not be reported twice.

    Args:
        tags: Raw tags collected from the tensors

    Returns:
        New set without the superseded tags
    """
    superseded = {
        Adapter(tag.target, AdapterTechnique.LORA)
        for tag in tags
        if isinstance(tag, Adapter) and tag.technique == AdapterTechnique.DORA
    }
    return tags - superseded


def classify(
        tensors: Iterable[TensorLike],
        rules: Optional[RuleSet] = None
) -> Tuple[ModelType, ...]:
    """
    Classify a tensor table into model type tags.

    Args:
        tensors: TensorEntry objects or (name, shape) pairs
        rules: Classification table, defaults to DEFAULT_RULES

    Returns:
        Tags sorted by their fixed order, without duplicates
    """
    if rules is None:
        rules = DEFAULT_RULES

    tags: Set[ModelType] = set()
    unmatched = 0
    for tensor in tensors:
        name, shape = _unpack(tensor)
        tag = rules.tag_for(name, shape)
        if tag is None:
            unmatched += 1
        else:
            tags.add(tag)

    result = tuple(sorted(remove_superseded(tags), key=lambda tag: tag.sort_key()))
    logger.debug(f"Classified {len(result)} model types, {unmatched} tensors unrecognised")
    return result
