"""
Common fixtures and utilities for testing the lora_inspector library.
"""
import json
import math
import shutil
import tempfile
from pathlib import Path

import numpy as np
import pytest
from safetensors.numpy import save_file

DTYPE_BYTES = {'F16': 2, 'BF16': 2, 'F32': 4, 'F64': 8, 'U8': 1, 'I64': 8}


def frame_header(header, data=b''):
    """Prefix a JSON header with its length and append tensor data."""
    header_bytes = json.dumps(header).encode('utf-8')
    return len(header_bytes).to_bytes(8, byteorder='little') + header_bytes + data


def make_header(tensors, metadata=None):
    """
    Build a valid header dict with contiguous offsets.

    Args:
        tensors: Dict of name to (dtype, shape)
        metadata: Optional __metadata__ table

    Returns:
        Tuple of (header dict, data section length)
    """
    header = {}
    if metadata is not None:
        header['__metadata__'] = metadata
    offset = 0
    for name, (dtype, shape) in tensors.items():
        size = math.prod(shape) * DTYPE_BYTES[dtype]
        header[name] = {'dtype': dtype, 'shape': list(shape), 'data_offsets': [offset, offset + size]}
        offset += size
    return header, offset


@pytest.fixture
def temp_dir():
    """
    Create a temporary directory for test files.

    Yields:
        Path to the temporary directory
    """
    temp_path = tempfile.mkdtemp(prefix="lora_inspector_test_")
    yield temp_path
    try:
        shutil.rmtree(temp_path)
    except (PermissionError, OSError):
        # Sometimes Windows has issues removing temp files immediately
        pass


@pytest.fixture
def write_safetensors(temp_dir):
    """
    Factory writing hand-framed safetensors files.

    Returns:
        Function (name, tensors, metadata=None) -> path, tensors as in make_header
    """
    def write(name, tensors, metadata=None):
        header, data_length = make_header(tensors, metadata)
        path = Path(temp_dir) / name
        path.write_bytes(frame_header(header, b'\x01' * data_length))
        return str(path)

    return write


@pytest.fixture
def tag_frequency():
    """Kohya style ss_tag_frequency value with two dataset directories."""
    return json.dumps({
        "10_subject": {"1girl": 10, "solo": 8},
        "5_style": {"1girl": 5, "outdoors": 3},
    })


@pytest.fixture
def lora_file(temp_dir, tag_frequency):
    """
    Write an SDXL-style LoRA with the safetensors library's own writer.

    Returns:
        Path to the file
    """
    tensors = {
        "lora_unet_input_blocks_4_1_proj_in.lora_down.weight": np.ones((4, 640), dtype=np.float16),
        "lora_unet_input_blocks_4_1_proj_in.lora_up.weight": np.ones((640, 4), dtype=np.float16),
        "lora_unet_input_blocks_4_1_proj_in.alpha": np.array(4.0, dtype=np.float32),
        "lora_te1_text_model_encoder_layers_0_mlp_fc1.lora_down.weight": np.ones((4, 768), dtype=np.float16),
        "lora_te1_text_model_encoder_layers_0_mlp_fc1.lora_up.weight": np.ones((3072, 4), dtype=np.float16),
    }
    metadata = {
        "ss_sd_model_name": "sd_xl_base_1.0.safetensors",
        "ss_network_module": "networks.lora",
        "ss_network_dim": "4",
        "ss_tag_frequency": tag_frequency,
    }
    path = Path(temp_dir) / "subject_lora.safetensors"
    save_file(tensors, str(path), metadata=metadata)
    return str(path)


@pytest.fixture
def model_directory(temp_dir, write_safetensors):
    """
    Create a directory with several safetensors files and some noise.

    Returns:
        Tuple of (directory, list of safetensors paths in sorted order)
    """
    directory = Path(temp_dir) / "loras"
    directory.mkdir()
    subfolder = directory / "nested"
    subfolder.mkdir()

    paths = []
    for name, tags in [("b_style.safetensors", {"d": {"watercolor": 2}}),
                       ("a_character.safetensors", {"d": {"red hair": 4, "smile": 1}}),
                       ("c_empty.safetensors", None)]:
        metadata = {"ss_sd_model_name": "v1-5-pruned.safetensors"}
        if tags is not None:
            metadata["ss_tag_frequency"] = json.dumps(tags)
        path = write_safetensors(
            str(Path("loras") / name),
            {"lora_unet_mid_block_attentions_0_proj_in.lora_down.weight": ('F16', (4, 8))},
            metadata
        )
        paths.append(path)

    (directory / "notes.txt").write_text("not a model")
    (directory / "broken.safetensors").write_bytes(b'\x01\x02')
    write_safetensors(str(Path("loras") / "nested" / "deep.safetensors"), {}, {})

    return str(directory), sorted(paths + [str(directory / "broken.safetensors")])
