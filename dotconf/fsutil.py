from __future__ import annotations

import json
import os
import shutil
from pathlib import Path
from typing import Mapping, Optional

from .errors import ArchiveFormatError, DotconfError
from .log import get_log
from .pathutil import join_cwd
from .records import Archive, ArchiveRecord, archive_from_json, archive_to_json


def read(file_name: str, cwd: Optional[str] = None, *, log=None) -> str:
    """Read a file as text; bytes that are not UTF-8 are kept as surrogates."""
    log = get_log(log=log)
    try:
        data = Path(join_cwd(file_name, cwd)).read_bytes()
    except OSError as exc:
        log.error(DotconfError(f"Cannot read {file_name}: {exc}"))
    return data.decode("utf-8", errors="surrogateescape")


def remove(file_name: str, cwd: Optional[str] = None, *, log=None) -> None:
    """Delete a file or directory tree; a missing path is not an error."""
    log = get_log(log=log)
    target = join_cwd(file_name, cwd)
    try:
        if os.path.isdir(target) and not os.path.islink(target):
            shutil.rmtree(target)
        else:
            os.remove(target)
    except FileNotFoundError:
        pass
    except OSError as exc:
        log.error(DotconfError(f"Cannot remove {target}: {exc}"))


def write(file_name: str, cwd: Optional[str], archive: Mapping[str, ArchiveRecord], *, log=None) -> Path:
    """Persist ``archive`` as JSON, replacing any previous file atomically."""
    log = get_log(log=log)
    path = Path(join_cwd(file_name, cwd))
    tmp = path.with_name(path.name + ".tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with tmp.open("w", encoding="utf-8") as f:
            json.dump(archive_to_json(archive), f)
        os.replace(tmp, path)
    except OSError as exc:
        try:
            tmp.unlink()
        except FileNotFoundError:
            pass
        log.error(DotconfError(f"Cannot write {path}: {exc}"))
    return path


def load_archive(file_name: str, cwd: Optional[str] = None) -> Archive:
    """Parse a persisted archive.

    Raises:
        FileNotFoundError: ``file_name`` does not exist.
        ArchiveFormatError: the file is not a JSON archive.
    """
    path = Path(join_cwd(file_name, cwd))
    try:
        obj = json.loads(path.read_text(encoding="utf-8"))
    except UnicodeDecodeError as exc:
        raise ArchiveFormatError(f"{path} is not a JSON archive: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ArchiveFormatError(f"{path} is not a JSON archive: {exc}") from exc
    return archive_from_json(obj)
