"""Download list derived from the status snapshot.

Progress comes from the server as-is; nothing here interpolates, sorts or
prunes entries.
"""

from __future__ import annotations

from dataclasses import dataclass

from .models import DOWNLOAD_FAILED, DownloadRecord, StatusSnapshot


@dataclass(frozen=True)
class DownloadEntry:
    id: str
    record: DownloadRecord

    @property
    def status(self) -> str:
        return self.record.status

    @property
    def progress(self) -> int:
        return self.record.progress

    @property
    def error(self) -> str | None:
        return self.record.error


def track_downloads(snapshot: StatusSnapshot | None) -> list[DownloadEntry]:
    if snapshot is None:
        return []
    return [DownloadEntry(id=download_id, record=record) for download_id, record in snapshot.downloads.items()]


def active_downloads(snapshot: StatusSnapshot | None) -> list[DownloadEntry]:
    return [entry for entry in track_downloads(snapshot) if entry.record.is_active]


def failed_downloads(snapshot: StatusSnapshot | None) -> list[DownloadEntry]:
    return [entry for entry in track_downloads(snapshot) if entry.status == DOWNLOAD_FAILED]
