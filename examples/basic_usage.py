"""
Basic usage example for the lora_inspector library.

This script shows the training metadata of every safetensors file in a
directory: detected model types, base model, most frequent training tags
and the tensor table.
"""
import os
import sys
from pathlib import Path

# Add the parent directory to the path so we can import the library
sys.path.insert(0, str(Path(__file__).parent.parent))

from lora_inspector import LoraInspector, InspectorConfig


def format_value(value, max_length=200):
    """Format a value for display, truncating if too long."""
    str_value = str(value)
    if len(str_value) > max_length:
        return f"{str_value[:max_length]}... [truncated, total length: {len(str_value)}]"
    return str_value


def main(path=None, show_tensors=False):
    """Run the basic usage example."""
    # Use current directory if none provided
    if path is None:
        path = os.getcwd()

    print(f"Reading safetensors headers in: {path}")

    config = InspectorConfig(show_progress=True)
    inspector = LoraInspector(config=config)

    entries = inspector.scan(path)
    records = inspector.load_all(entries)

    print(f"\nFound {len(entries)} files:")
    for entry, record in zip(entries, records):
        print(f"\n--- {entry.name} ---")
        if entry.failed:
            print(f"Could not be read: {entry.error}")
            continue

        types = ", ".join(str(model_type) for model_type in record.model_types) or "Unknown"
        print(f"Type: {types}")
        print(f"Base model: {record.base_model_display}")

        if record.tag_frequencies:
            print("Top tags:")
            for tag, weight in record.tag_frequencies[:10]:
                print(f"  {weight:g} {tag}")

        if record.raw_metadata:
            print("Metadata:")
            for key, value in sorted(record.raw_metadata.items()):
                print(f"  {key}: {format_value(value)}")

        if show_tensors:
            print("Tensors:")
            for tensor in record.tensors:
                print(f"  {tensor}")


if __name__ == "__main__":
    # Allow specifying a file or directory as a command-line argument
    path = sys.argv[1] if len(sys.argv) > 1 else None
    main(path, show_tensors='--tensors' in sys.argv)
