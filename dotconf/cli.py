from __future__ import annotations

import os
import sys
import argparse
import logging
import json as _json
import getpass as _getpass

from typing import List, Optional

from dotconf.builder import constrict
from dotconf.constants import CIPHER_AES_GCM, CIPHER_LEGACY, KIND_DIRECTORY, KIND_FILE, PASSPHRASE_ENV
from dotconf.errors import DotconfError, NothingToConstrict
from dotconf.log import Log, LOGGER_NAME
from dotconf.records import archive_to_json
from dotconf.restore import liberate, put_back
from dotconf.safe import safe


def _resolve_passphrase(args: argparse.Namespace) -> Optional[str]:
    """Passphrase from --passphrase, then the environment, then a prompt."""
    if args.passphrase:
        return args.passphrase
    env = os.environ.get(PASSPHRASE_ENV)
    if env:
        return env
    if args.ask_passphrase:
        return _getpass.getpass("Passphrase: ")
    return None


def cmd_constrict(
    pattern: Optional[str],
    *,
    files: Optional[List[str]] = None,
    ignore: Optional[List[str]] = None,
    cwd: Optional[str] = None,
    dot: bool = True,
    passphrase: Optional[str] = None,
    legacy_cipher: bool = False,
    destination: Optional[str] = None,
    merge: bool = False,
    log: Log,
) -> bool:
    """Build an archive; print it as JSON when no destination is given.

    Args:
        pattern: Glob matched from ``cwd``.
        files: Explicit paths to include before glob matches.
        ignore: Glob patterns to exclude.
        cwd: Base directory (defaults to the current directory).
        passphrase: Optional encryption passphrase.
        legacy_cipher: Write tokens readable by OpenSSL/CryptoJS based tools.
        destination: Output JSON path (relative to ``cwd``).
        merge: Merge into an existing destination instead of replacing it.
    """
    archive = constrict(
        pattern=pattern,
        files=files,
        ignore=ignore,
        cwd=cwd or os.curdir,
        dot=dot,
        passphrase=passphrase,
        cipher=CIPHER_LEGACY if legacy_cipher else CIPHER_AES_GCM,
        destination=destination,
        merge=merge,
        log=log,
    )
    if not destination:
        print(_json.dumps(archive_to_json(archive), indent=2))
    return True


def cmd_liberate(archive: str, *, cwd: Optional[str] = None, passphrase: Optional[str] = None, list_only: bool = False, log: Log) -> bool:
    """Restore every file of a persisted archive, or list its entries."""
    entries = liberate(archive, cwd=cwd, passphrase=passphrase, restore=not list_only, log=log)
    if list_only:
        for path in entries:
            print(path)
    return True


def cmd_safe(name: str, files: List[str], *, cwd: Optional[str] = None, log: Log) -> bool:
    """Snapshot files into a sibling directory, replacing any earlier snapshot."""
    safe(name, cwd or os.curdir, files, log=log)
    return True


def cmd_put_back(path: str, *, kind: str, data: Optional[str] = None, cwd: Optional[str] = None, passphrase: Optional[str] = None, log: Log) -> bool:
    """Restore a single directory or file entry."""
    put_back(path, cwd or os.curdir, kind, data, passphrase=passphrase, log=log)
    return True


def _add_passphrase_args(ap: argparse.ArgumentParser) -> None:
    ap.add_argument("--passphrase", help=f"Encryption passphrase (or set {PASSPHRASE_ENV})")
    ap.add_argument("--ask-passphrase", action="store_true", help="Prompt for the passphrase")


def main(argv: List[str] | None = None):
    ap = argparse.ArgumentParser(
        prog="dotconf",
        description="Pack files into a JSON archive and put them back",
        epilog=(
            "Contents are percent-encoded; with a passphrase they are also encrypted "
            "(AES-256-GCM, Argon2id key)."
        ),
    )
    ap.add_argument("--quiet", "-q", action="store_true", help="Do not print progress or errors")
    ap.add_argument("--verbose", "-v", action="store_true", help="Print every path processed")
    sub = ap.add_subparsers(dest="cmd", required=True)

    ap_con = sub.add_parser("constrict", help="Archive files into a JSON document")
    ap_con.add_argument("pattern", nargs="?", help="Glob pattern, matched from --cwd")
    ap_con.add_argument("--files", nargs="+", help="Explicit files to include")
    ap_con.add_argument("--ignore", nargs="+", help="Glob patterns to exclude")
    ap_con.add_argument("--cwd", help="Base directory (default: current directory)")
    ap_con.add_argument("--destination", "-o", help="Write the archive to this JSON file")
    ap_con.add_argument("--merge", action="store_true", help="Merge into an existing destination instead of replacing it")
    ap_con.add_argument("--no-dot", action="store_true", help="Do not match dotfiles")
    ap_con.add_argument("--legacy-cipher", action="store_true", help="Encrypt with the OpenSSL/CryptoJS compatible AES-CBC format")
    _add_passphrase_args(ap_con)

    ap_lib = sub.add_parser("liberate", help="Restore files from a JSON archive")
    ap_lib.add_argument("archive", help="Archive path, relative to --cwd")
    ap_lib.add_argument("--cwd", help="Base directory for relative entries")
    ap_lib.add_argument("--list", action="store_true", help="List entries without restoring")
    _add_passphrase_args(ap_lib)

    ap_safe = sub.add_parser("safe", help="Copy files into a snapshot directory")
    ap_safe.add_argument("name", help="Snapshot directory name, relative to --cwd")
    ap_safe.add_argument("files", nargs="+", help="Paths relative to --cwd")
    ap_safe.add_argument("--cwd", help="Base directory (default: current directory)")

    ap_put = sub.add_parser("put-back", help="Restore a single directory or file entry")
    ap_put.add_argument("path", help="Entry path")
    ap_put.add_argument("--kind", choices=[KIND_DIRECTORY, KIND_FILE], default=KIND_FILE)
    ap_put.add_argument("--data", help="Encoded content for a file entry")
    ap_put.add_argument("--cwd", help="Base directory (default: current directory)")
    _add_passphrase_args(ap_put)

    args = ap.parse_args(argv)

    logging.basicConfig(format="%(message)s", stream=sys.stderr)
    logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG if args.verbose else logging.INFO)
    log = Log(silent=args.quiet)

    try:
        if args.cmd == "constrict":
            cmd_constrict(
                args.pattern,
                files=args.files,
                ignore=args.ignore,
                cwd=args.cwd,
                dot=not args.no_dot,
                passphrase=_resolve_passphrase(args),
                legacy_cipher=args.legacy_cipher,
                destination=args.destination,
                merge=args.merge,
                log=log,
            )
        elif args.cmd == "liberate":
            cmd_liberate(args.archive, cwd=args.cwd, passphrase=_resolve_passphrase(args), list_only=args.list, log=log)
        elif args.cmd == "safe":
            cmd_safe(args.name, args.files, cwd=args.cwd, log=log)
        elif args.cmd == "put-back":
            cmd_put_back(args.path, kind=args.kind, data=args.data, cwd=args.cwd, passphrase=_resolve_passphrase(args), log=log)
        else:
            raise RuntimeError("Unknown command")
    except NothingToConstrict as e:
        log.fatal(e)
    except DotconfError:
        # already reported by the log facade
        sys.exit(2)
    except (OSError, RuntimeError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()
