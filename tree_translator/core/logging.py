import logging
from pathlib import Path
from typing import Optional, Union

from pythonjsonlogger.json import JsonFormatter


def setup_job_logger(job_id: str, log_dir: Optional[Union[str, Path]] = None) -> logging.Logger:
    """Setup a structured logger for a specific job.

    Records always go to the console; when ``log_dir`` is given they are also
    written to ``<log_dir>/<job_id>.log``.
    """
    logger = logging.getLogger(f"tree_translator.job.{job_id}")
    if not logger.handlers:  # Only add handlers if none exist
        logger.setLevel(logging.INFO)
        logger.propagate = False

        # create a json formatter for structured logging
        formatter = JsonFormatter(
            "%(asctime)s %(levelname)s %(message)s",
            static_fields={"job_id": job_id},
        )

        if log_dir is not None:
            log_path = Path(log_dir)
            log_path.mkdir(parents=True, exist_ok=True)
            fh = logging.FileHandler(log_path / f"{job_id}.log", encoding="utf-8")
            fh.setLevel(logging.INFO)
            fh.setFormatter(formatter)
            logger.addHandler(fh)

        ch = logging.StreamHandler()
        ch.setLevel(logging.INFO)
        ch.setFormatter(formatter)
        logger.addHandler(ch)

    return logger


def close_job_logger(logger: logging.Logger) -> None:
    """Detach and close the handlers of a job logger once the job is over."""
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


# Setup root logger
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)
