from .cancellation import CancellationToken, PipelineCancelledError
from .pipeline import PipelineProgress, PipelineResult, run_translation_pipeline
from .service import JobService, parse_allowed_extensions, to_public_job_view

__all__ = [
    'CancellationToken',
    'JobService',
    'PipelineCancelledError',
    'PipelineProgress',
    'PipelineResult',
    'parse_allowed_extensions',
    'run_translation_pipeline',
    'to_public_job_view',
]
