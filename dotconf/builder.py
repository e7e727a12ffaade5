from __future__ import annotations

import os
import stat
from typing import Iterable, Optional, Sequence, Tuple

from .codec import encode
from .constants import DEFAULT_CIPHER
from .encryption import Keyring
from .errors import ArchiveFormatError, ConstrictError, OptionsError
from .fsutil import load_archive, read, write
from .log import get_log
from .pathutil import join_cwd, resolve_paths
from .records import Archive, ArchiveRecord, Stats


def build_archive(
    paths: Iterable[str],
    *,
    cwd: Optional[str] = None,
    passphrase: Optional[str] = None,
    cipher: str = DEFAULT_CIPHER,
    log=None,
) -> Tuple[Archive, Stats]:
    """Encode every file in ``paths`` into an archive keyed by the path as given.

    Directories are counted and skipped; nothing is recursed into, so nested
    files must be selected explicitly (e.g. with a ``**`` pattern).

    Returns:
        The archive and the file/directory counts for this call.
    """
    log = get_log(log=log)
    archive: Archive = {}
    stats = Stats()
    keyring = Keyring(passphrase) if passphrase else None
    for path in paths:
        fs_path = join_cwd(path, cwd)
        try:
            st = os.stat(fs_path)
        except OSError as exc:
            log.error(ConstrictError(f"Cannot stat {path}: {exc}"))
        if stat.S_ISDIR(st.st_mode):
            stats.directories += 1
            log.debug(f"  skipping directory: {path}")
            continue
        stats.files += 1
        log.debug(f"  constricting: {path}")
        content = read(path, cwd, log=log)
        archive[path] = ArchiveRecord(
            content=encode(content, passphrase, cipher=cipher, errors="surrogateescape", keyring=keyring, log=log)
        )
    return archive, stats


def merge_with_existing(destination: str, entries: Archive, *, cwd: Optional[str] = None) -> Archive:
    """Union a previously persisted archive with ``entries``; ``entries`` win.

    A missing or unreadable destination is the first-run case and simply
    yields ``entries``.
    """
    try:
        previous = load_archive(destination, cwd)
    except (OSError, ArchiveFormatError):
        return entries
    previous.update(entries)
    return previous


def constrict(
    *,
    pattern: Optional[str] = None,
    files: Optional[Sequence[str]] = None,
    ignore: Optional[Sequence[str]] = None,
    cwd: Optional[str] = None,
    dot: bool = True,
    passphrase: Optional[str] = None,
    cipher: str = DEFAULT_CIPHER,
    destination: Optional[str] = None,
    merge: bool = False,
    log=None,
) -> Archive:
    """Select files, encode them into an archive and optionally persist it.

    Args:
        pattern: Glob matched from ``cwd``.
        files: Explicit paths, placed before glob matches.
        ignore: Glob patterns excluded from ``pattern`` matches.
        cwd: Base directory for the pattern, relative paths and ``destination``.
        dot: Let the pattern match dotfiles.
        passphrase: Encrypt every record when given.
        cipher: ``"aes-gcm"`` or ``"legacy"``.
        destination: JSON file to write; replaced unless ``merge`` is set.
        merge: Merge with an existing ``destination`` instead of replacing it.

    Returns:
        The archive (merged with the previous one when ``merge`` is set).

    Raises:
        OptionsError: neither ``pattern`` nor ``files`` given, or ``files`` is not a list.
        NothingToConstrict: the selection is empty.
        ConstrictError: a selected path cannot be read.
    """
    log = get_log(log=log)
    if not pattern and files is None:
        log.error(OptionsError('Missing options "pattern" and / or "files"'))

    paths = resolve_paths(pattern, files, cwd=cwd, dot=dot, ignore=ignore, log=log)
    archive, stats = build_archive(paths, cwd=cwd, passphrase=passphrase, cipher=cipher, log=log)

    if destination:
        if merge:
            archive = merge_with_existing(destination, archive, cwd=cwd)
        out = write(destination, cwd, archive, log=log)
        log.info(f"  written: {out}")
    log.ok(f"Done: {stats.files} files, {stats.directories} dirs constricted")
    return archive
