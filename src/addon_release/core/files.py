"""File operations service for the JSON configuration document."""

import json
import os
import tempfile
from pathlib import Path
from typing import Any


class FileService:
    """Service for reading and atomically writing JSON documents."""

    def read_json(self, path: Path) -> dict[str, Any]:
        """Read a JSON file and return its contents.

        Args:
            path: Path to the JSON file.

        Returns:
            Parsed JSON contents as a dictionary.

        Raises:
            FileNotFoundError: If the file doesn't exist.
            ValueError: If the file is not a JSON object.
        """
        if not path.exists():
            raise FileNotFoundError(f"JSON file not found: {path}")

        with path.open("r", encoding="utf-8") as f:
            content = f.read()

        if not content.strip():
            return {}

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Failed to parse JSON file {path}: {e}") from e

        if not isinstance(data, dict):
            raise ValueError(f"Expected a JSON object in {path}, got {type(data).__name__}")
        return data

    def write_json(self, path: Path, data: dict[str, Any], *, indent: int = 2) -> None:
        """Write data to a JSON file.

        The document is written to a temporary file in the same directory and
        moved over the target, so readers see either the old or the new
        content and never a partial write.

        Args:
            path: Path to the JSON file.
            data: Data to write.
            indent: Indentation level for pretty printing.
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=indent)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
