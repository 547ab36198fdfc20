from typing import Any, Dict, List, Optional
from threading import Lock
from datetime import timedelta
import uuid
from tree_translator.exceptions import JobNotFoundError
from tree_translator.models.job import JobRecord, JobStatus, JobProgress, SourceType, utcnow


class JobStore:
    """Thread-safe in-memory job store.

    Records are immutable snapshots; ``update`` swaps in a merged copy so a
    reader never observes a half-applied change.
    """
    def __init__(self):
        self._jobs: Dict[str, JobRecord] = {}
        self._lock = Lock()

    def create(
        self,
        *,
        source_type: SourceType,
        translator: str,
        model: str,
        target_language: str,
        allowed_extensions: List[str],
        workspace_root: str,
        input_root: str,
        output_root: str,
        zip_path: str,
        repo_url: Optional[str] = None,
        output_folder: Optional[str] = None,
        job_id: Optional[str] = None,
    ) -> JobRecord:
        """Create a new queued job."""
        now = utcnow()
        job = JobRecord(
            id=job_id or str(uuid.uuid4()),
            source_type=source_type,
            repo_url=repo_url,
            translator=translator,
            model=model,
            target_language=target_language,
            output_folder=output_folder,
            allowed_extensions=list(allowed_extensions),
            workspace_root=workspace_root,
            input_root=input_root,
            output_root=output_root,
            zip_path=zip_path,
            status=JobStatus.QUEUED,
            progress=JobProgress(),
            errors=[],
            created_at=now,
            updated_at=now,
        )
        with self._lock:
            self._jobs[job.id] = job
        return job

    def get(self, job_id: str) -> Optional[JobRecord]:
        """Get job by ID."""
        return self._jobs.get(job_id)

    def update(self, job_id: str, **changes: Any) -> JobRecord:
        """Shallow-merge ``changes`` into the job and bump ``updated_at``."""
        changes.pop("id", None)
        changes.pop("created_at", None)
        with self._lock:
            existing = self._jobs.get(job_id)
            if existing is None:
                raise JobNotFoundError(f"Job {job_id} not found")
            # updated_at must move forward even when the clock has not ticked
            now = max(utcnow(), existing.updated_at + timedelta(microseconds=1))
            updated = existing.model_copy(update={**changes, "updated_at": now})
            self._jobs[job_id] = updated
        return updated

    def remove(self, job_id: str) -> None:
        with self._lock:
            self._jobs.pop(job_id, None)

    def list_jobs(self) -> List[JobRecord]:
        with self._lock:
            return list(self._jobs.values())

    def clear(self) -> None:
        with self._lock:
            self._jobs.clear()


_job_store: Optional[JobStore] = None
_job_store_lock = Lock()


def get_job_store() -> JobStore:
    """Return the process-wide job store, creating it on first use."""
    global _job_store
    if _job_store is None:
        with _job_store_lock:
            if _job_store is None:
                _job_store = JobStore()
    return _job_store
