from enum import Enum
from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    def __str__(self):
        return self.value

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})


class SourceType(str, Enum):
    LOCAL_UPLOAD = "local-upload"
    REMOTE_REPOSITORY = "remote-repository"

    def __str__(self):
        return self.value


class JobProgress(BaseModel):
    total_files: int = 0
    processed_files: int = 0
    failed_files: int = 0
    current_file: Optional[str] = None


class FileError(BaseModel):
    """A file whose transform failed; its original bytes were copied instead."""
    relative_path: str
    message: str


class JobRecord(BaseModel):
    """One translation job: what to translate, where it lives on disk and how far it got."""
    model_config = ConfigDict(frozen=True)

    id: str
    source_type: SourceType
    repo_url: Optional[str] = None
    translator: str
    model: str
    target_language: str
    output_folder: Optional[str] = None
    allowed_extensions: List[str] = Field(default_factory=list)
    workspace_root: str
    input_root: str
    output_root: str
    zip_path: str
    status: JobStatus = JobStatus.QUEUED
    progress: JobProgress = Field(default_factory=JobProgress)
    errors: List[FileError] = Field(default_factory=list)
    last_error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def all_files_failed(self) -> bool:
        progress = self.progress
        return progress.total_files > 0 and progress.processed_files == progress.failed_files


class JobPublicView(BaseModel):
    """What clients get to see of a job. Never carries filesystem paths."""
    id: str
    source_type: SourceType
    repo_url: Optional[str] = None
    translator: str
    model: str
    target_language: str
    output_folder: Optional[str] = None
    allowed_extensions: List[str]
    status: JobStatus
    progress: JobProgress
    errors: List[FileError]
    last_error: Optional[str] = None
    all_files_failed: bool = False
    created_at: datetime
    updated_at: datetime
    download_url: Optional[str] = None
    tree_url: Optional[str] = None
