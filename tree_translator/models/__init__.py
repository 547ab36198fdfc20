from .job import FileError, JobProgress, JobPublicView, JobRecord, JobStatus, SourceType

__all__ = ['FileError', 'JobProgress', 'JobPublicView', 'JobRecord', 'JobStatus', 'SourceType']
