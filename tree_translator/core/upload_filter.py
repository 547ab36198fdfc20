from dataclasses import dataclass
from typing import Iterable, List, Tuple

from tree_translator.core.config import UPLOAD_IGNORED_SEGMENTS


@dataclass
class UploadEntry:
    """One uploaded file: its path inside the uploaded folder and its bytes."""
    path: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


def normalize_upload_path(path: str) -> str:
    return path.replace("\\", "/").strip().lstrip("/")


def should_ignore_upload_path(relative_path: str) -> bool:
    normalized = normalize_upload_path(relative_path)
    if not normalized:
        return True
    segments = [segment for segment in normalized.split("/") if segment]
    return any(segment in UPLOAD_IGNORED_SEGMENTS for segment in segments)


def partition_upload_files(entries: Iterable[UploadEntry]) -> Tuple[List[UploadEntry], List[UploadEntry]]:
    """Split uploads into (accepted, skipped), keeping the input order."""
    accepted: List[UploadEntry] = []
    skipped: List[UploadEntry] = []

    for entry in entries:
        if should_ignore_upload_path(entry.path):
            skipped.append(entry)
        else:
            accepted.append(entry)

    return accepted, skipped
