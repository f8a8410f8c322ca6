"""
JSON file storage with atomic replacement.

The counters collection lives in a single JSON file.  Every write goes
through :func:`write_json_atomic`, which writes to a temporary file in
the same directory, syncs it to disk and renames it over the
destination with ``os.replace``.  Readers of the destination therefore
see either the previous complete document or the new one.

Temporary files are named ``.<basename>-<random>.tmp``.  If the process
dies between writing and renaming, the leftover is removed by
:func:`remove_stale_temp_files` on the next start.
"""

from __future__ import annotations

import json
import logging
import os
import stat
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, List

logger = logging.getLogger(__name__)

_MISSING = object()
_TEMP_SUFFIX = ".tmp"


def resolve_path(path: str) -> Path:
    """Return an absolute path for ``path``.

    Relative paths are resolved against the current working directory.
    """
    return Path(path).expanduser().resolve()


def _temp_prefix(path: Path) -> str:
    return f".{path.name}-"


def _target_mode(path: Path) -> int:
    """Permission bits the destination should end up with.

    An existing file keeps its mode; a new one gets ``0o666`` minus the
    process umask, as ``open`` would give it.
    """
    try:
        return stat.S_IMODE(os.stat(path).st_mode)
    except FileNotFoundError:
        umask = os.umask(0)
        os.umask(umask)
        return 0o666 & ~umask


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialise ``data`` and atomically replace ``path`` with it.

    Raises ``OSError`` if any filesystem step fails and ``TypeError`` or
    ``ValueError`` if ``data`` cannot be serialised.  In every failure
    case the temporary file is removed and ``path`` is left untouched.
    """
    payload = json.dumps(data, ensure_ascii=False, indent=2).encode("utf-8")
    directory = path.parent
    directory.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        dir=str(directory), prefix=_temp_prefix(path), suffix=_TEMP_SUFFIX
    )
    try:
        with os.fdopen(fd, "wb") as fh:
            # mkstemp creates 0600; keep the destination's permissions instead
            if hasattr(os, "fchmod"):
                os.fchmod(fh.fileno(), _target_mode(path))
            fh.write(payload)
            fh.flush()
            os.fsync(fh.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def read_json(path: Path, default: Any = _MISSING) -> Any:
    """Load and return the JSON document at ``path``.

    If the file does not exist ``default`` is returned when given,
    otherwise ``FileNotFoundError`` propagates.  Decoding errors
    propagate as ``ValueError`` (``json.JSONDecodeError`` or
    ``UnicodeDecodeError``); other read failures as ``OSError``.
    """
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except FileNotFoundError:
        if default is _MISSING:
            raise
        return default


def remove_stale_temp_files(path: Path) -> List[Path]:
    """Delete temporary files left next to ``path`` by interrupted writes.

    Only files matching the temp naming scheme for this destination are
    touched.  Returns the list of removed paths.
    """
    directory = path.parent
    if not directory.is_dir():
        return []
    removed: List[Path] = []
    for candidate in directory.glob(f"{_temp_prefix(path)}*{_TEMP_SUFFIX}"):
        if not candidate.is_file():
            continue
        candidate.unlink()
        logger.warning("Removed stale temporary file %s", candidate)
        removed.append(candidate)
    return removed


def backup_file(path: Path, label: str = "corrupt") -> Path:
    """Rename ``path`` to ``<name>.<label>-<UTC timestamp>`` and return the new path.

    The original file is moved, never copied or truncated, so its
    content is preserved byte for byte.
    """
    stamp = datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S%fZ")
    backup = path.with_name(f"{path.name}.{label}-{stamp}")
    os.replace(path, backup)
    return backup
