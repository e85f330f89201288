"""Local file I/O utilities."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Mapping

logger = logging.getLogger(__name__)


def save_jsonl_local(
    records: list[Mapping[str, Any]],
    relative_path: str,
    output_dir: str = "output",
) -> Path:
    """
    Save records to a local JSONL file under ``output_dir``.

    Args:
        records: List of JSON-serializable mappings
        relative_path: Path below output_dir, e.g. a dataset storage key
        output_dir: Directory to save to (default: "output")

    Returns:
        Path to the created file.
    """
    filepath = Path(output_dir) / relative_path
    filepath.parent.mkdir(parents=True, exist_ok=True)

    with filepath.open("w", encoding="utf-8") as f:
        for record in records:
            f.write(json.dumps(record, default=str, ensure_ascii=False) + "\n")

    logger.info("Saved %d records to %s", len(records), filepath)
    return filepath
