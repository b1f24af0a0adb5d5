"""
Snapshot storage abstraction.

Provides a simple interface for reading and writing the JSON snapshots the
map is served from. Currently uses the local filesystem.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Iterable, Optional, Union

from domain.errors import LoadFailure

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]

CHUNK_SIZE = 64 * 1024


class SnapshotStorage:
    """
    Local snapshot storage implementation.

    Snapshots are organized as:
    - {data_root}/features.json         - Full feature collection
    - {data_root}/features.sample.json  - Bundled sample collection
    - {data_root}/addressIndex.json     - Flat address index

    Absolute paths are used as-is so each snapshot location can be
    configured independently.
    """

    def __init__(self, data_root: PathLike = "data"):
        self.data_root = Path(data_root)

    def get_absolute_path(self, path: PathLike) -> Path:
        """Resolve a snapshot path against the data root."""
        path = Path(path)
        return path if path.is_absolute() else self.data_root / path

    def file_size(self, path: PathLike) -> int:
        target = self.get_absolute_path(path)
        return target.stat().st_size if target.exists() else 0

    def read_json(self, path: PathLike) -> Any:
        """
        Read and parse a JSON snapshot.

        Raises:
            LoadFailure: if the file is missing, unreadable or not valid JSON
        """
        target = self.get_absolute_path(path)
        try:
            with open(target, "r", encoding="utf-8") as f:
                return json.load(f)
        except FileNotFoundError:
            raise LoadFailure(target, "file not found")
        except (OSError, UnicodeDecodeError) as exc:
            raise LoadFailure(target, f"unreadable: {exc}")
        except json.JSONDecodeError as exc:
            raise LoadFailure(target, f"malformed JSON: {exc}")

    def write_snapshot(self, path: PathLike, chunks: Iterable[bytes], min_bytes: int = 0) -> Optional[Path]:
        """
        Write a snapshot from an iterable of byte chunks.

        Data goes to a temporary sibling first and is moved into place, so a
        reader never sees a partially written snapshot. If fewer than
        ``min_bytes`` arrive, the existing file is left untouched.

        Returns:
            Absolute path to the saved file, or None if the data was too small
        """
        target = self.get_absolute_path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = target.with_name(target.name + ".part")
        size = 0
        try:
            with open(tmp_path, "wb") as f:
                for chunk in chunks:
                    f.write(chunk)
                    size += len(chunk)
            if size < min_bytes:
                logger.warning("Refusing to save %s: only %d bytes", target, size)
                return None
            os.replace(tmp_path, target)
        finally:
            if tmp_path.exists():
                tmp_path.unlink()
        logger.info("Saved snapshot %s (%d bytes)", target, size)
        return target
