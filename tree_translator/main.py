import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, JSONResponse, Response

from tree_translator.config import get_settings
from tree_translator.core.upload_filter import UploadEntry
from tree_translator.exceptions import UserInputError
from tree_translator.schemas import CredentialsUpdate, GithubJobSubmission, JobAction
from tree_translator.workflow.service import JobService, to_public_job_view

# Set up logging
logging.basicConfig(
    level=get_settings().LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.job_service = JobService(get_settings())
    yield
    await app.state.job_service.shutdown()


app = FastAPI(title="Project Translator", lifespan=lifespan)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(UserInputError)
async def user_input_error_handler(request: Request, exc: UserInputError):
    status_code = 404 if isinstance(exc, LookupError) else 400
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


# Add exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global exception handler caught: {str(exc)}", exc_info=True)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


def get_job_service(request: Request) -> JobService:
    return request.app.state.job_service


def _base_url(request: Request) -> str:
    return str(request.base_url).rstrip("/")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


@app.post("/api/jobs", status_code=202)
async def create_folder_job(
    request: Request,
    files: List[UploadFile] = File(...),
    paths: List[str] = Form(...),
    translator: str = Form("openai"),
    model: Optional[str] = Form(None),
    targetLanguage: Optional[str] = Form(None),
    outputFolder: Optional[str] = Form(None),
    allowedExtensions: Optional[str] = Form(None),
    service: JobService = Depends(get_job_service),
):
    """Translate an uploaded folder. ``paths[i]`` is the relative path of ``files[i]``."""
    if len(files) != len(paths):
        raise UserInputError("Uploaded files and paths do not match")

    entries = [UploadEntry(path=path, content=await upload.read()) for upload, path in zip(files, paths)]

    job = await service.create_folder_job(
        files=entries,
        translator=translator,
        model=model,
        target_language=targetLanguage,
        output_folder=outputFolder,
        allowed_extensions=allowedExtensions,
    )
    return {"job": to_public_job_view(job, _base_url(request))}


@app.post("/api/jobs/github", status_code=202)
async def create_github_job(
    request: Request,
    submission: GithubJobSubmission,
    service: JobService = Depends(get_job_service),
):
    """Translate a public GitHub repository."""
    job = await service.create_github_job(
        repo_url=submission.repo_url,
        translator=submission.translator,
        model=submission.model,
        target_language=submission.target_language,
        output_folder=submission.output_folder,
        allowed_extensions=submission.allowed_extensions,
    )
    return {"job": to_public_job_view(job, _base_url(request))}


@app.get("/api/jobs/{job_id}")
async def get_job_status(job_id: str, request: Request, service: JobService = Depends(get_job_service)):
    job = service.get_job(job_id)
    return {"job": to_public_job_view(job, _base_url(request))}


@app.patch("/api/jobs/{job_id}")
async def update_job(
    job_id: str,
    action: JobAction,
    request: Request,
    service: JobService = Depends(get_job_service),
):
    if action.action != "cancel":
        raise UserInputError('Unsupported action. Expected action="cancel"')
    job = service.cancel_job(job_id)
    return {"job": to_public_job_view(job, _base_url(request))}


@app.get("/api/jobs/{job_id}/tree")
async def get_job_tree(job_id: str, service: JobService = Depends(get_job_service)):
    job = service.get_job(job_id)
    return {"files": service.list_translated_files(job)}


@app.get("/api/jobs/{job_id}/file")
async def get_job_file(
    job_id: str,
    path: str = Query(..., min_length=1),
    service: JobService = Depends(get_job_service),
):
    job = service.get_job(job_id)
    content = service.read_translated_file(job, path)
    return Response(content=content, media_type="text/plain; charset=utf-8")


@app.get("/api/jobs/{job_id}/download")
async def download_job_archive(job_id: str, service: JobService = Depends(get_job_service)):
    job = service.get_job(job_id)
    zip_path = service.ensure_job_artifacts_exist(job)
    return FileResponse(zip_path, media_type="application/zip", filename=f"{job.id}-translated.zip")


@app.get("/api/translator-status")
async def get_translator_status(service: JobService = Depends(get_job_service)):
    return {"provider_status": service.translators.status()}


@app.post("/api/translator-status")
async def update_translator_credentials(
    update: CredentialsUpdate,
    service: JobService = Depends(get_job_service),
):
    changes = {name: getattr(update, name) for name in update.model_fields_set}
    service.translators.credentials.update(**changes)
    return {"provider_status": service.translators.status()}
