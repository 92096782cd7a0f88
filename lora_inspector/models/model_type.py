# lora_inspector/models/model_type.py
from dataclasses import dataclass
from enum import IntEnum
from typing import Tuple, Union


class Architecture(IntEnum):
    """Base checkpoint architecture."""
    SD = 0  # Single CLIP text encoder
    SDXL = 1  # Dual text encoder conditioner


class NetworkTarget(IntEnum):
    """Sub-model an adapter tensor modifies."""
    TEXT_ENCODER_1 = 0
    TEXT_ENCODER_2 = 1
    UNET = 2
    TRANSFORMER = 3  # DiT style diffusion backbone


class AdapterTechnique(IntEnum):
    """Factorization used by an adapter."""
    LORA = 0  # Low-rank
    DORA = 1  # Weight-decomposed low-rank
    LOHA = 2  # Hadamard product
    LOKR = 3  # Kronecker product


class VaeKind(IntEnum):
    """Where a VAE lives."""
    STANDALONE = 0
    BAKED = 1  # Embedded in a full checkpoint


ARCHITECTURE_NAMES = {
    Architecture.SD: 'SD',
    Architecture.SDXL: 'SDXL',
}

TARGET_NAMES = {
    NetworkTarget.TEXT_ENCODER_1: 'Text encoder 1',
    NetworkTarget.TEXT_ENCODER_2: 'Text encoder 2',
    NetworkTarget.UNET: 'UNet',
    NetworkTarget.TRANSFORMER: 'Transformer',
}

TECHNIQUE_NAMES = {
    AdapterTechnique.LORA: 'LoRA',
    AdapterTechnique.DORA: 'DoRA',
    AdapterTechnique.LOHA: 'LoHa',
    AdapterTechnique.LOKR: 'LoKr',
}


@dataclass(frozen=True)
class Checkpoint:
    """A full model checkpoint."""
    architecture: Architecture

    def sort_key(self) -> Tuple[int, ...]:
        return (0, int(self.architecture))

    def __str__(self) -> str:
        return f"{ARCHITECTURE_NAMES[self.architecture]} checkpoint"


@dataclass(frozen=True)
class Adapter:
    """An adapter network applied to one sub-model."""
    target: NetworkTarget
    technique: AdapterTechnique

    def sort_key(self) -> Tuple[int, ...]:
        return (1, int(self.target), int(self.technique))

    def __str__(self) -> str:
        return f"{TARGET_NAMES[self.target]} {TECHNIQUE_NAMES[self.technique]}"


@dataclass(frozen=True)
class Vae:
    """A variational autoencoder."""
    kind: VaeKind

    def sort_key(self) -> Tuple[int, ...]:
        return (2, int(self.kind))

    def __str__(self) -> str:
        if self.kind == VaeKind.BAKED:
            return "Baked VAE"
        return "VAE"


ModelType = Union[Checkpoint, Adapter, Vae]
