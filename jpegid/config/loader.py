import yaml
from pathlib import Path
from typing import Any, Dict


def load_config_data(config_path: Path) -> Dict[str, Any]:
    """Reads the raw YAML mapping so CLI flags can be layered on top."""
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r') as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {config_path}")

    # Same spelling as the repeatable --file flag
    if "file" in data and "file_patterns" not in data:
        data["file_patterns"] = data.pop("file")

    return data
