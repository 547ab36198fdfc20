"""Job orchestration: accepts jobs, runs them in the background, tracks their state."""

import asyncio
import logging
import os
import shutil
import threading
import uuid
from typing import Dict, Iterable, List, Optional, Union

from tree_translator.config import Settings, get_settings
from tree_translator.core.config import CANCELLED_MESSAGE, DEFAULT_ALLOWED_EXTENSIONS
from tree_translator.core.file_scan import list_project_files
from tree_translator.core.logging import close_job_logger, setup_job_logger
from tree_translator.core.path_safety import InvalidPathError, PathEscapeError, resolve_safe_path
from tree_translator.core.upload_filter import UploadEntry
from tree_translator.exceptions import ArtifactNotFoundError, JobNotFoundError, UserInputError, describe_error
from tree_translator.job_store import JobStore, get_job_store
from tree_translator.models.job import (
    JobProgress,
    JobPublicView,
    JobRecord,
    JobStatus,
    SourceType,
)
from tree_translator.translator import TranslatorRegistry, create_translator_registry
from tree_translator.workflow.archive import create_zip_from_directory
from tree_translator.workflow.cancellation import CancellationToken, PipelineCancelledError
from tree_translator.workflow.pipeline import PipelineProgress, run_translation_pipeline
from tree_translator.workflow.staging import (
    UploadLimits,
    clone_github_repo,
    stage_uploaded_files,
    validate_public_github_url,
)
from tree_translator.workflow.workspace import WorkspaceManager, WorkspacePaths

logger = logging.getLogger(__name__)


def _normalize_extension(value: str) -> Optional[str]:
    trimmed = value.strip().lower()
    if not trimmed:
        return None
    if "/" in trimmed or "\\" in trimmed or any(ch.isspace() for ch in trimmed):
        raise UserInputError(f"Invalid file extension: {value!r}")
    return trimmed if trimmed.startswith(".") else f".{trimmed}"


def parse_allowed_extensions(raw: Union[str, Iterable[str], None]) -> List[str]:
    """Normalize an allow-list to unique, lowercase, dot-prefixed extensions.

    Accepts a comma-separated string or a list. Falls back to the default
    documentation extensions when nothing usable is given.
    """
    if raw is None:
        values = list(DEFAULT_ALLOWED_EXTENSIONS)
    elif isinstance(raw, str):
        values = raw.split(",")
    else:
        values = [value for value in raw if isinstance(value, str)]

    normalized = []
    for value in values:
        extension = _normalize_extension(value)
        if extension and extension not in normalized:
            normalized.append(extension)

    return normalized or list(DEFAULT_ALLOWED_EXTENSIONS)


def to_public_job_view(job: JobRecord, base_url: Optional[str] = None) -> JobPublicView:
    view = JobPublicView(
        id=job.id,
        source_type=job.source_type,
        repo_url=job.repo_url,
        translator=job.translator,
        model=job.model,
        target_language=job.target_language,
        output_folder=job.output_folder,
        allowed_extensions=job.allowed_extensions,
        status=job.status,
        progress=job.progress,
        errors=job.errors,
        last_error=job.last_error,
        all_files_failed=job.all_files_failed,
        created_at=job.created_at,
        updated_at=job.updated_at,
    )

    if job.status == JobStatus.COMPLETED and base_url is not None:
        base = base_url.rstrip("/")
        view.download_url = f"{base}/api/jobs/{job.id}/download"
        view.tree_url = f"{base}/api/jobs/{job.id}/tree"

    return view


class JobService:
    """Creates translation jobs and drives each one through its lifecycle.

    One instance is built at process start and shared by every consumer. It
    owns the per-job cancellation tokens and background tasks.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[JobStore] = None,
        workspaces: Optional[WorkspaceManager] = None,
        translators: Optional[TranslatorRegistry] = None,
    ):
        self.settings = settings or get_settings()
        self.store = store or get_job_store()
        self.workspaces = workspaces or WorkspaceManager(self.settings)
        self.translators = translators or create_translator_registry(self.settings)
        self._tokens: Dict[str, CancellationToken] = {}
        self._tasks: Dict[str, asyncio.Task] = {}
        # Serializes status transitions between cancel requests and the job task
        self._transition_lock = threading.Lock()

    # Submission

    def _upload_limits(self) -> UploadLimits:
        return UploadLimits(
            max_file_count=self.settings.MAX_UPLOAD_FILE_COUNT,
            max_single_file_bytes=self.settings.MAX_SINGLE_UPLOAD_BYTES,
            max_total_bytes=self.settings.MAX_TOTAL_UPLOAD_BYTES,
        )

    def _assert_output_not_in_use(self, output_root: str) -> None:
        for job in self.store.list_jobs():
            if not job.status.is_terminal and os.path.abspath(job.output_root) == os.path.abspath(output_root):
                raise UserInputError("Output folder is in use by another running job")

    def _discard_workspace(self, workspace: WorkspacePaths) -> None:
        shutil.rmtree(workspace.root, ignore_errors=True)

    async def create_folder_job(
        self,
        *,
        files: List[UploadEntry],
        translator: str,
        target_language: Optional[str] = None,
        model: Optional[str] = None,
        output_folder: Optional[str] = None,
        allowed_extensions: Union[str, Iterable[str], None] = None,
    ) -> JobRecord:
        """Stage uploaded files and start translating them in the background."""
        self.translators.assert_configured(translator)
        resolved_model = self.translators.resolve_model(translator, model)
        extensions = parse_allowed_extensions(allowed_extensions)

        job_id = str(uuid.uuid4())
        workspace = self.workspaces.prepare(job_id, output_folder)

        try:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, stage_uploaded_files, workspace.input, files, self._upload_limits())
            job = self._create_record(
                job_id,
                workspace,
                source_type=SourceType.LOCAL_UPLOAD,
                translator=translator,
                model=resolved_model,
                target_language=target_language or self.settings.DEFAULT_TARGET_LANGUAGE,
                allowed_extensions=extensions,
                input_root=workspace.input,
            )
        except BaseException:
            self._discard_workspace(workspace)
            raise

        self._run_in_background(job.id)
        return job

    async def create_github_job(
        self,
        *,
        repo_url: str,
        translator: str,
        target_language: Optional[str] = None,
        model: Optional[str] = None,
        output_folder: Optional[str] = None,
        allowed_extensions: Union[str, Iterable[str], None] = None,
    ) -> JobRecord:
        """Clone a public GitHub repository and start translating it in the background."""
        self.translators.assert_configured(translator)
        resolved_model = self.translators.resolve_model(translator, model)
        extensions = parse_allowed_extensions(allowed_extensions)
        clone_url = validate_public_github_url(repo_url)

        job_id = str(uuid.uuid4())
        workspace = self.workspaces.prepare(job_id, output_folder)

        try:
            repo_root = await clone_github_repo(clone_url, workspace.input, self.settings.GIT_CLONE_TIMEOUT)
            job = self._create_record(
                job_id,
                workspace,
                source_type=SourceType.REMOTE_REPOSITORY,
                repo_url=repo_url,
                translator=translator,
                model=resolved_model,
                target_language=target_language or self.settings.DEFAULT_TARGET_LANGUAGE,
                allowed_extensions=extensions,
                input_root=repo_root,
            )
        except BaseException:
            self._discard_workspace(workspace)
            raise

        self._run_in_background(job.id)
        return job

    def _create_record(self, job_id: str, workspace: WorkspacePaths, **fields) -> JobRecord:
        self._assert_output_not_in_use(workspace.output)
        job = self.store.create(
            job_id=job_id,
            workspace_root=workspace.root,
            output_root=workspace.output,
            output_folder=workspace.output_folder,
            zip_path=workspace.zip,
            **fields,
        )
        logger.info(f"Job {job.id} queued ({job.source_type}, translator={job.translator})")
        return job

    # Queries and cancellation

    def get_job(self, job_id: str) -> JobRecord:
        job = self.store.get(job_id)
        if job is None:
            raise JobNotFoundError("Job not found")
        return job

    def cancel_job(self, job_id: str) -> JobRecord:
        """Request cancellation. Terminal jobs are returned unchanged."""
        with self._transition_lock:
            job = self.get_job(job_id)
            if job.status.is_terminal:
                return job

            token = self._tokens.get(job_id)
            if token is not None:
                token.cancel()

            job = self.store.update(job_id, status=JobStatus.CANCELLED, last_error=CANCELLED_MESSAGE)

        logger.info(f"Job {job_id} cancelled")
        return job

    async def wait_for_job(self, job_id: str, timeout: Optional[float] = None) -> JobRecord:
        """Wait until the job's background execution is over and return the record."""
        task = self._tasks.get(job_id)
        if task is not None:
            await asyncio.wait_for(asyncio.shield(task), timeout)
        return self.get_job(job_id)

    async def shutdown(self) -> None:
        """Cancel every running job and wait for the tasks to wind down."""
        for token in list(self._tokens.values()):
            token.cancel()
        tasks = list(self._tasks.values())
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # Background execution

    def _run_in_background(self, job_id: str) -> None:
        token = CancellationToken()
        self._tokens[job_id] = token
        task = asyncio.get_running_loop().create_task(self._process_job(job_id, token), name=f"job-{job_id}")
        self._tasks[job_id] = task
        task.add_done_callback(lambda _: self._tasks.pop(job_id, None))

    def _release(self, job_id: str) -> None:
        self._tokens.pop(job_id, None)

    def _transition(self, job_id: str, status: JobStatus, **changes) -> Optional[JobRecord]:
        """Apply a status change unless the job already reached a terminal state."""
        with self._transition_lock:
            job = self.store.get(job_id)
            if job is None or job.status.is_terminal:
                return job
            return self.store.update(job_id, status=status, **changes)

    def _record_progress(self, job_id: str, progress: PipelineProgress) -> None:
        self.store.update(
            job_id,
            progress=JobProgress(
                total_files=progress.total_files,
                processed_files=progress.processed_files,
                failed_files=progress.failed_files,
                current_file=progress.current_file,
            ),
            errors=progress.errors,
        )

    async def _process_job(self, job_id: str, token: CancellationToken) -> None:
        job = self.store.get(job_id)
        if job is None:
            self._release(job_id)
            return

        job_logger = setup_job_logger(job_id, self.settings.LOG_DIR)
        try:
            if token.cancelled or job.status == JobStatus.CANCELLED:
                self._transition(job_id, JobStatus.CANCELLED, last_error=CANCELLED_MESSAGE)
                job_logger.info("Job cancelled before it started")
                return

            started = self._transition(job_id, JobStatus.RUNNING, last_error=None)
            if started is None or started.status != JobStatus.RUNNING:
                return
            job_logger.info(f"Job started with translator {job.translator} ({job.model})")

            provider = self.translators.get(job.translator)
            result = await run_translation_pipeline(
                input_root=job.input_root,
                output_root=job.output_root,
                allowed_extensions=job.allowed_extensions,
                max_file_size_bytes=self.settings.MAX_TRANSLATE_FILE_BYTES,
                translate=provider.translate,
                on_progress=lambda progress: self._record_progress(job_id, progress),
                cancel_token=token,
                source_type=job.source_type,
                target_language=job.target_language,
                model=job.model,
                log=job_logger,
            )
            token.raise_if_cancelled()

            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, create_zip_from_directory, job.output_root, job.zip_path)
            token.raise_if_cancelled()

            self._transition(
                job_id,
                JobStatus.COMPLETED,
                errors=result.errors,
                progress=JobProgress(
                    total_files=result.total_files,
                    processed_files=result.processed_files,
                    failed_files=result.failed_files,
                ),
            )
            job_logger.info(
                f"Job completed: {result.processed_files}/{result.total_files} files, "
                f"{result.failed_files} failed"
            )
        except PipelineCancelledError:
            self._transition(job_id, JobStatus.CANCELLED, last_error=CANCELLED_MESSAGE)
            job_logger.info("Job cancelled")
        except asyncio.CancelledError:
            # The task itself was cancelled, e.g. on event loop shutdown
            self._transition(job_id, JobStatus.CANCELLED, last_error=CANCELLED_MESSAGE)
            raise
        except Exception as e:
            if token.cancelled:
                self._transition(job_id, JobStatus.CANCELLED, last_error=CANCELLED_MESSAGE)
                job_logger.info("Job cancelled")
            else:
                job_logger.error(f"Job failed: {str(e)}", exc_info=True)
                self._transition(job_id, JobStatus.FAILED, last_error=describe_error(e))
        finally:
            self._release(job_id)
            close_job_logger(job_logger)

    # Output retrieval

    def _require_completed(self, job: JobRecord) -> None:
        if job.status != JobStatus.COMPLETED:
            raise UserInputError("Job is not completed yet")

    def list_translated_files(self, job: JobRecord) -> List[dict]:
        self._require_completed(job)
        files = []
        for relative_path in list_project_files(job.output_root):
            absolute_path = resolve_safe_path(job.output_root, relative_path)
            files.append({"path": relative_path, "size": os.path.getsize(absolute_path)})
        return files

    def read_translated_file(self, job: JobRecord, relative_path: str) -> bytes:
        self._require_completed(job)
        try:
            absolute_path = resolve_safe_path(job.output_root, relative_path)
        except (InvalidPathError, PathEscapeError) as e:
            raise UserInputError(str(e)) from e

        if not os.path.isfile(absolute_path):
            raise ArtifactNotFoundError(f"File not found: {relative_path}")

        with open(absolute_path, "rb") as f:
            return f.read()

    def ensure_job_artifacts_exist(self, job: JobRecord) -> str:
        """Return the archive path of a completed job that has something to download."""
        self._require_completed(job)
        if job.all_files_failed:
            raise UserInputError(
                "All files failed to translate. Please verify translator API key and try again."
            )
        if not os.path.isfile(job.zip_path):
            raise ArtifactNotFoundError("Translated archive is missing")
        return job.zip_path


__all__ = [
    'JobService',
    'parse_allowed_extensions',
    'to_public_job_view',
]
