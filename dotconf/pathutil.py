from __future__ import annotations

import fnmatch
import glob
import os
from typing import Iterable, List, Optional, Sequence

from .errors import DotconfError, NothingToConstrict, OptionsError
from .log import get_log


def join_cwd(path: str, cwd: Optional[str]) -> str:
    """Resolve ``path`` against ``cwd``; absolute paths are returned unchanged."""
    if not cwd:
        return path
    return os.path.join(cwd, path)


def norm_path(p: str) -> str:
    """Normalize a path to a relative forward-slash form.

    Rules:
    - Convert backslashes to slashes
    - Strip leading/trailing slashes
    - Remove empty and '.' segments
    - Reject '..' segments
    """
    p = p.replace("\\", "/").strip("/")
    parts = [q for q in p.split("/") if q not in ("", ".")]
    for q in parts:
        if q == "..":
            raise ValueError("Path may not contain '..'")
    return "/".join(parts)


def _split(path: str) -> List[str]:
    return [q for q in path.replace("\\", "/").split("/") if q not in ("", ".")]


def _match_parts(parts: Sequence[str], pats: Sequence[str]) -> bool:
    """Glob match one segment at a time; ``*`` never crosses a '/'."""
    if not pats:
        return not parts
    head = pats[0]
    if head == "**":
        # zero or more whole segments, so "dir/**" also covers "dir"
        return any(_match_parts(parts[i:], pats[1:]) for i in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatchcase(parts[0], head) and _match_parts(parts[1:], pats[1:])


def _is_ignored(path: str, ignore: Sequence[str]) -> bool:
    parts = _split(path)
    return any(_match_parts(parts, _split(pat)) for pat in ignore)


def get(pattern: str, *, cwd: Optional[str] = None, dot: bool = True, ignore: Optional[Iterable[str]] = None, log=None) -> List[str]:
    """Expand a glob pattern.

    Args:
        pattern: Glob with ``*``, ``**``, ``?`` and bracket classes.
        cwd: Directory the pattern is matched from; results are relative to it.
        dot: Match names starting with '.' when True.
        ignore: Patterns whose matches are dropped from the result.

    Returns:
        Sorted list of matching paths (files and directories).
    """
    log = get_log(log=log)
    ignore = list(ignore or [])
    try:
        matches = glob.glob(pattern, root_dir=cwd or None, recursive=True, include_hidden=dot)
    except (OSError, ValueError) as exc:
        log.error(DotconfError(f"Cannot expand pattern {pattern!r}: {exc}"))
    return sorted(m for m in matches if not _is_ignored(m, ignore))


def resolve_paths(
    pattern: Optional[str] = None,
    files: Optional[Sequence[str]] = None,
    *,
    cwd: Optional[str] = None,
    dot: bool = True,
    ignore: Optional[Iterable[str]] = None,
    log=None,
) -> List[str]:
    """Explicit files first, then glob matches; duplicates are kept.

    Raises:
        OptionsError: ``files`` is not a list of paths.
        NothingToConstrict: the combined selection is empty.
    """
    log = get_log(log=log)
    if files is not None and (isinstance(files, (str, bytes)) or not isinstance(files, (list, tuple))):
        log.error(OptionsError('Wrong type option "files", must be a list'))
    selected: List[str] = list(files or [])
    if pattern:
        selected.extend(get(pattern, cwd=cwd, dot=dot, ignore=ignore, log=log))
    if not selected:
        # severity is the caller's call; the CLI treats this one as fatal
        raise NothingToConstrict("No file selected, nothing to constrict.")
    return selected
