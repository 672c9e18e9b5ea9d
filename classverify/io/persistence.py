"""Verdict persistence for classverify.

The pipeline writes a finished verdict through the VerdictRecorder interface.
JsonVerdictRecorder is the bundled implementation: one JSON document per
class log, written atomically (write-to-temp-then-rename), so a re-run
overwrites the previous verdict in full and a crash never leaves half a file.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import os
import re
import tempfile
from abc import ABC, abstractmethod
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from classverify.models.verification import VerificationVerdict

logger = logging.getLogger(__name__)

_SAFE_ID_RE = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class _RecordEncoder(json.JSONEncoder):
    """JSON encoder that handles verdicts, dataclasses, dates and Path objects."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, VerificationVerdict):
            return obj.to_dict()
        if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
            return dataclasses.asdict(obj)
        if isinstance(obj, (datetime, date)):
            return obj.isoformat()
        if isinstance(obj, Path):
            return str(obj)
        return super().default(obj)


def save_json(data: Any, path: str | Path, indent: int = 2) -> None:
    """Atomically write data to a JSON file.

    Creates parent directories if they do not exist.

    Args:
        data: Data to serialize. Supports dicts, lists, verdicts, dataclasses,
            dates and Path objects.
        path: Output file path.
        indent: JSON indentation level (default: 2).
    """
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        serialized = json.dumps(data, indent=indent, ensure_ascii=False, cls=_RecordEncoder)
    except (TypeError, ValueError) as exc:
        logger.error("JSON serialization failed for %s: %s", path, exc)
        raise

    with tempfile.NamedTemporaryFile(
        mode="w",
        encoding="utf-8",
        dir=path.parent,
        delete=False,
        suffix=".tmp",
    ) as tmp:
        tmp.write(serialized)
        tmp_path = tmp.name

    try:
        os.replace(tmp_path, path)
    except OSError as exc:
        os.unlink(tmp_path)
        logger.error("Atomic rename failed for %s: %s", path, exc)
        raise

    logger.debug("Saved JSON to %s (%d bytes)", path, len(serialized))


def load_json(path: str | Path) -> Optional[Any]:
    """Load and parse a JSON file.

    Returns None if the file does not exist or cannot be parsed.
    """
    path = Path(path)
    if not path.exists():
        logger.debug("JSON file not found: %s", path)
        return None

    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to load JSON from %s: %s", path, exc)
        return None


class VerdictRecorder(ABC):
    """Writes a finished verdict onto its class-log record."""

    @abstractmethod
    def persist_verdict(self, class_log_id: str, verdict: VerificationVerdict) -> None:
        """Overwrite the verification fields of one class log.

        Must be idempotent: writing the same verdict twice leaves the same record.
        Errors propagate to the caller; implementations do not retry.
        """


class JsonVerdictRecorder(VerdictRecorder):
    """Stores each verdict as ``<root>/<class_log_id>.json``.

    Args:
        root: Directory holding the verdict documents.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, class_log_id: str) -> Path:
        if not _SAFE_ID_RE.match(class_log_id):
            raise ValueError(f"Unsafe class log id for file storage: {class_log_id!r}")
        return self.root / f"{class_log_id}.json"

    def persist_verdict(self, class_log_id: str, verdict: VerificationVerdict) -> None:
        save_json(verdict, self.path_for(class_log_id))
        logger.info("Recorded verdict for class log %s (%s)", class_log_id, verdict.final_match)

    def load_verdict(self, class_log_id: str) -> Optional[dict]:
        """Return the stored verdict document, or None if none was written."""
        return load_json(self.path_for(class_log_id))
