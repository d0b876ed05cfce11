"""Read and write export snapshots as JSON files."""
import logging
import os
from pathlib import Path

from shared.schemas import Snapshot

logger = logging.getLogger(__name__)


def write_snapshot(snapshot: Snapshot, path: str | Path) -> Path:
    """Write a snapshot as camelCase JSON, creating parent directories."""
    path = Path(path)
    if path.parent and not path.parent.exists():
        os.makedirs(path.parent, exist_ok=True)
    path.write_text(snapshot.model_dump_json(by_alias=True, indent=2), encoding="utf-8")
    logger.info("Snapshot written", extra={"path": str(path)})
    return path


def read_snapshot(path: str | Path) -> Snapshot:
    path = Path(path)
    return Snapshot.model_validate_json(path.read_text(encoding="utf-8"))
