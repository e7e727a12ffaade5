"""
dotconf: pack files into a single JSON document and put them back.

Features:

- Glob or explicit file selection (``constrict``), keyed by path.
- Contents percent-encoded, optionally encrypted with a passphrase
  (AES-256-GCM with an Argon2id key; legacy OpenSSL/CryptoJS AES tokens are
  still readable and writable).
- Merge into an existing archive or replace it.
- Restore whole archives (``liberate``) or single entries (``put_back``).
- Snapshot a set of files into a quarantine directory (``safe``).

Every call returns or logs its own file/directory counts; there is no global
state. Recoverable problems raise ``dotconf.errors.DotconfError`` subclasses.
"""

__version__ = "0.2"

from .builder import build_archive, constrict, merge_with_existing
from .codec import decode, encode
from .fsutil import load_archive, read, remove, write
from .log import Log, get_log
from .pathutil import get, resolve_paths
from .records import ArchiveRecord, Stats
from .restore import liberate, put_back, restore_archive
from .safe import safe

__all__ = [
    "ArchiveRecord",
    "Log",
    "Stats",
    "build_archive",
    "constrict",
    "decode",
    "encode",
    "get",
    "get_log",
    "liberate",
    "load_archive",
    "merge_with_existing",
    "put_back",
    "read",
    "remove",
    "resolve_paths",
    "restore_archive",
    "safe",
    "write",
]
