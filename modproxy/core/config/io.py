from __future__ import annotations

import json
import os
import shutil
import tempfile
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class ReadResult:
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def missing(self) -> bool:
        return self.error == "missing"


def ensure_dirs(*dirs: str) -> None:
    for d in dirs:
        os.makedirs(d, exist_ok=True)


def read_json_file(path: str) -> ReadResult:
    """Read a JSON object; errors are ``missing``, ``corrupt_json:...``, ``not_object`` or the OS error."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
    except FileNotFoundError:
        return ReadResult(error="missing")
    except ValueError as e:  # JSONDecodeError, UnicodeDecodeError
        return ReadResult(error=f"corrupt_json:{e}")
    except OSError as e:
        return ReadResult(error=str(e))
    if not isinstance(obj, dict):
        return ReadResult(error="not_object")
    return ReadResult(data=obj)


def _backups_of(path: str, backups_dir: str) -> List[str]:
    prefix = os.path.basename(path) + "."
    found = [os.path.join(backups_dir, n) for n in os.listdir(backups_dir) if n.startswith(prefix)]
    return sorted(found, key=os.path.getmtime, reverse=True)


def backup_file(path: str, backups_dir: str, *, reason: str, max_backups: int = 10) -> Optional[str]:
    """
    Keep a copy of ``path`` as ``<name>.<utc stamp>.<reason>.json``.  A
    ``corrupt`` file is moved aside rather than copied.  Only the newest
    ``max_backups`` copies of the file are retained.
    """
    if not os.path.exists(path):
        return None
    ensure_dirs(backups_dir)
    stamp = time.strftime("%Y%m%d_%H%M%S", time.gmtime())
    dest = os.path.join(backups_dir, f"{os.path.basename(path)}.{stamp}.{reason}.json")
    (shutil.move if reason == "corrupt" else shutil.copy2)(path, dest)
    for stale in _backups_of(path, backups_dir)[max_backups:]:
        try:
            os.remove(stale)
        except FileNotFoundError:
            pass
    return dest


def atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    """Write through a temporary file in the same directory, then rename over ``path``."""
    directory = os.path.dirname(path) or "."
    ensure_dirs(directory)
    with tempfile.NamedTemporaryFile("w", encoding="utf-8", dir=directory, prefix=".tmp_", suffix=".json", delete=False) as f:
        tmp = f.name
        try:
            json.dump(data, f, indent=2, ensure_ascii=False, sort_keys=True)
            f.write("\n")
        except BaseException:
            f.close()
            os.remove(tmp)
            raise
    os.replace(tmp, path)
