from __future__ import annotations

import os
from pathlib import Path
from typing import List, Mapping, Optional, Tuple

from .codec import decode
from .constants import KIND_DIRECTORY, KIND_FILE
from .encryption import Keyring
from .errors import ArchiveFormatError, DotconfError, OptionsError, RestoreError
from .fsutil import load_archive
from .log import get_log
from .pathutil import join_cwd
from .records import Archive, ArchiveRecord, Stats


def put_back(
    file_name: str,
    cwd: Optional[str],
    kind: str,
    data: Optional[str] = None,
    *,
    passphrase: Optional[str] = None,
    keyring: Optional[Keyring] = None,
    log=None,
) -> Stats:
    """Recreate one directory or file entry under ``cwd``.

    Args:
        file_name: Path of the entry; absolute paths ignore ``cwd``.
        cwd: Base directory for relative entries.
        kind: ``"directory"`` or ``"file"``.
        data: Encoded content for files.
        passphrase: Needed when the content was encrypted.
        keyring: Derived keys shared with other entries of the same archive.

    Raises:
        OptionsError: unknown ``kind``.
        CodecError: ``data`` cannot be decoded.
        RestoreError: the filesystem write failed.
    """
    log = get_log(log=log)
    target = Path(join_cwd(file_name, cwd))
    stats = Stats()
    if kind == KIND_DIRECTORY:
        stats.directories += 1
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.error(RestoreError(f"Cannot create directory {target}: {exc}", [(file_name, exc)]))
        log.debug(f"   creating: {file_name}/")
    elif kind == KIND_FILE:
        stats.files += 1
        text = decode(data or "", passphrase, keyring=keyring, log=log)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(text.encode("utf-8", errors="surrogateescape"))
        except OSError as exc:
            log.error(RestoreError(f"Cannot write {target}: {exc}", [(file_name, exc)]))
        log.debug(f"  liberating: {file_name}")
    else:
        log.error(OptionsError(f"Unknown entry kind {kind!r}, expected 'directory' or 'file'"))
    return stats


def restore_archive(
    archive: Mapping[str, ArchiveRecord],
    *,
    cwd: Optional[str] = None,
    passphrase: Optional[str] = None,
    log=None,
) -> Stats:
    """Restore every record; failures do not stop the remaining entries.

    Raises:
        RestoreError: after all entries were attempted, when any of them failed.
    """
    log = get_log(log=log)
    stats = Stats()
    failures: List[Tuple[str, BaseException]] = []
    keyring = Keyring(passphrase) if passphrase else None
    for path, record in archive.items():
        try:
            stats += put_back(path, cwd, KIND_FILE, record.content, passphrase=passphrase, keyring=keyring, log=log)
        except DotconfError as exc:
            failures.append((path, exc))
    if failures:
        log.error(RestoreError(f"{len(failures)} of {len(archive)} entries could not be restored", failures))
    return stats


def liberate(
    file_name: str,
    *,
    cwd: Optional[str] = None,
    passphrase: Optional[str] = None,
    restore: bool = True,
    log=None,
) -> Archive:
    """Load a persisted archive and, unless ``restore`` is False, restore it.

    A relative ``file_name`` is looked up under ``cwd``, the same place
    ``constrict`` writes its ``destination``. Relative archive keys are
    restored under ``cwd`` (or the current directory); absolute keys go back
    to their original location.

    Returns:
        The parsed archive.

    Raises:
        ArchiveFormatError: ``file_name`` is missing or not an archive.
        RestoreError: one or more entries could not be restored.
    """
    log = get_log(log=log)
    try:
        archive = load_archive(file_name, cwd)
    except OSError as exc:
        log.error(ArchiveFormatError(f"Cannot read archive {file_name}: {exc}"))
    except ArchiveFormatError as exc:
        log.error(exc)
    if restore:
        stats = restore_archive(archive, cwd=cwd or os.curdir, passphrase=passphrase, log=log)
        log.ok(f"Done: {stats.files} files liberated from {file_name}")
    return archive
