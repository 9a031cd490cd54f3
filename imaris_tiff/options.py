"""Reader options and the optional per-project ``imaris_tiff.json`` loader."""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional

CONFIG_FILENAME = "imaris_tiff.json"


class MetadataLevel(Enum):
    """How much metadata ``open`` extracts beyond pixel geometry."""

    MINIMUM = "minimum"
    NO_OVERLAYS = "no_overlays"
    ALL = "all"


@dataclass(frozen=True)
class MetadataOptions:
    metadata_level: MetadataLevel = MetadataLevel.ALL


def parse_metadata_level(value: str) -> MetadataLevel:
    token = str(value).strip().lower()
    for level in MetadataLevel:
        if token in (level.value, level.name.lower()):
            return level
    raise ValueError(f"Unknown metadata level {value!r}")


def load_metadata_options(project_root: Optional[Path]) -> MetadataOptions:
    """Return options defined in ``<project_root>/imaris_tiff.json``.

    The file is optional. When present it must hold a JSON object; the only
    recognised key is ``metadata_level`` (``"minimum"``, ``"no_overlays"`` or
    ``"all"``).
    """

    if project_root is None:
        return MetadataOptions()

    config_path = (Path(project_root) / CONFIG_FILENAME).expanduser().resolve()
    if not config_path.exists():
        return MetadataOptions()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {config_path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ValueError(f"Expected object at top level of {config_path}")

    level = data.get("metadata_level")
    if level is None:
        return MetadataOptions()
    return MetadataOptions(metadata_level=parse_metadata_level(level))


__all__ = [
    "CONFIG_FILENAME",
    "MetadataLevel",
    "MetadataOptions",
    "parse_metadata_level",
    "load_metadata_options",
]
