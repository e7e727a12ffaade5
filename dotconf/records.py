from __future__ import annotations

from dataclasses import dataclass, asdict
from typing import Any, Dict, Mapping

from .errors import ArchiveFormatError


@dataclass
class ArchiveRecord:
    content: str

    def to_dict(self) -> Dict[str, str]:
        return asdict(self)

    @staticmethod
    def from_dict(obj: Any) -> "ArchiveRecord":
        if not isinstance(obj, dict) or not isinstance(obj.get("content"), str):
            raise ArchiveFormatError("Archive record must be an object with a string 'content'")
        return ArchiveRecord(content=obj["content"])


Archive = Dict[str, ArchiveRecord]


@dataclass
class Stats:
    """Files and directories seen by a single build, restore or snapshot call."""

    files: int = 0
    directories: int = 0

    def __add__(self, other: "Stats") -> "Stats":
        return Stats(files=self.files + other.files, directories=self.directories + other.directories)

    def __iadd__(self, other: "Stats") -> "Stats":
        self.files += other.files
        self.directories += other.directories
        return self


def archive_to_json(archive: Mapping[str, ArchiveRecord]) -> Dict[str, Dict[str, str]]:
    return {path: record.to_dict() for path, record in archive.items()}


def archive_from_json(obj: Any) -> Archive:
    if not isinstance(obj, dict):
        raise ArchiveFormatError("Archive must be a JSON object keyed by path")
    return {str(path): ArchiveRecord.from_dict(rec) for path, rec in obj.items()}
