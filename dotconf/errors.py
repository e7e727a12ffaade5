from __future__ import annotations

from typing import List, Tuple


class DotconfError(Exception):
    """Base class for recoverable dotconf errors."""


class OptionsError(DotconfError):
    pass


class NothingToConstrict(DotconfError):
    """No file selected; there is nothing to archive."""


class CodecError(DotconfError):
    pass


class PassphraseError(CodecError):
    """Authentication failed: wrong passphrase or tampered content."""


class ArchiveFormatError(DotconfError):
    pass


class ConstrictError(DotconfError):
    pass


class _BatchError(DotconfError):
    def __init__(self, message: str, failures: List[Tuple[str, BaseException]] | None = None):
        super().__init__(message)
        self.failures = list(failures or [])


class RestoreError(_BatchError):
    pass


class SnapshotError(_BatchError):
    pass
