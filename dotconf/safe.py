from __future__ import annotations

import os
import shutil
import stat
from typing import List, Sequence, Tuple

from .errors import DotconfError, SnapshotError
from .fsutil import remove
from .log import get_log
from .pathutil import join_cwd, norm_path
from .records import Stats


def _copy_one(file: str, cwd: str, root: str, log) -> Stats:
    src = join_cwd(file, cwd)
    try:
        dst = os.path.join(root, norm_path(file))
        # missing sources must not leave empty parents in the snapshot
        st = os.stat(src)
        if stat.S_ISDIR(st.st_mode):
            shutil.copytree(src, dst, symlinks=True, dirs_exist_ok=True)
            return Stats(directories=1)
        os.makedirs(os.path.dirname(dst), exist_ok=True)
        shutil.copy2(src, dst)
    except (OSError, ValueError) as exc:
        log.error(SnapshotError(f"Cannot copy {file}: {exc}", [(file, exc)]))
    return Stats(files=1)


def safe(name: str, cwd: str, files: Sequence[str], *, log=None) -> Stats:
    """Snapshot ``files`` (relative to ``cwd``) into ``cwd/name``.

    Any previous snapshot at ``cwd/name`` is removed first, so repeated calls
    with the same arguments end in the same state. Sources are copied, never
    moved.

    Raises:
        SnapshotError: the destination cannot be prepared, or (after every
            copy was attempted) some copies failed.
    """
    log = get_log(log=log)
    root = join_cwd(name, cwd)
    try:
        remove(name, cwd, log=log)
        os.mkdir(root)
    except (OSError, DotconfError) as exc:
        log.error(SnapshotError(f"Cannot prepare snapshot directory {root}: {exc}", [(name, exc)]))

    stats = Stats()
    failures: List[Tuple[str, BaseException]] = []
    for file in files:
        try:
            stats += _copy_one(file, cwd, root, log)
        except SnapshotError as exc:
            failures.append((file, exc))
            continue
        log.debug(f"  saved: {file}")
    if failures:
        log.error(SnapshotError(f"{len(failures)} of {len(files)} paths could not be saved", failures))
    log.ok(f"Done: {stats.files} files, {stats.directories} dirs saved to {root}")
    return stats
