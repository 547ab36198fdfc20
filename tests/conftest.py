import asyncio
import os
import sys
import time
from pathlib import Path

import pytest
from rich.console import Console
from rich.live import Live
from rich.table import Table

# Add the project root directory to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from tree_translator.config import Settings
from tree_translator.job_store import JobStore
from tree_translator.translator import RuntimeCredentials, TranslatorRegistry
from tree_translator.workflow.service import JobService


def pytest_configure(config):
    """Add custom markers"""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests")
    config.addinivalue_line("markers", "e2e: End-to-end tests")
    config.addinivalue_line("markers", "api: API tests")


class TestProgress:
    __test__ = False

    def __init__(self):
        self.console = Console()
        self.table = Table(show_header=True, header_style="bold magenta")
        self.table.add_column("Category")
        self.table.add_column("Total")
        self.table.add_column("Passed")
        self.table.add_column("Failed")
        self.table.add_column("Duration")
        self.stats = {
            name: {"total": 0, "passed": 0, "failed": 0, "duration": 0.0}
            for name in ("unit", "integration", "e2e", "api")
        }
        self.live = None
        self.refresh_table()

    def start(self):
        """Start the live display"""
        try:
            self.refresh_table()
            self.live = Live(self.table, console=self.console, refresh_per_second=4)
            self.live.start()
        except Exception:
            self.live = None

    def stop(self):
        """Stop the live display"""
        if self.live:
            try:
                self.refresh_table()
                self.live.stop()
            except Exception:
                pass  # display errors must not fail the run
            finally:
                self.live = None

    def refresh_table(self):
        self.table.rows.clear()
        for category, stats in self.stats.items():
            self.table.add_row(
                category,
                str(stats["total"]),
                f"[green]{stats['passed']}[/]",
                f"[red]{stats['failed']}[/]",
                f"{stats['duration']:.2f}s"
            )

    def update_stats(self, category, passed, duration):
        if category not in self.stats:
            return
        self.stats[category]["total"] += 1
        if passed:
            self.stats[category]["passed"] += 1
        else:
            self.stats[category]["failed"] += 1
        self.stats[category]["duration"] += duration
        try:
            self.refresh_table()
        except Exception:
            pass


test_progress = TestProgress()


@pytest.fixture(scope="session", autouse=True)
def progress_tracker():
    test_progress.start()
    yield test_progress
    test_progress.stop()


def pytest_runtest_logreport(report):
    """Update progress after each test"""
    if report.when == "call":
        category = next(
            (name for name in ("unit", "integration", "e2e", "api") if f"/{name}/" in report.nodeid),
            "unit",
        )
        test_progress.update_stats(category, report.passed, report.duration)


class UppercaseTranslator:
    """Deterministic stand-in for a remote provider."""
    name = "local"

    def __init__(self, fail_on=None, delay=0.0):
        self.fail_on = set(fail_on or ())
        self.delay = delay
        self.calls = []

    async def translate(self, text, context):
        self.calls.append(context.relative_path)
        if self.delay:
            await asyncio.sleep(self.delay)
        if context.relative_path in self.fail_on:
            raise RuntimeError(f"boom: {context.relative_path}")
        return text.upper()


def write_tree(root: Path, files: dict) -> Path:
    """Create ``files`` ({relative path: str or bytes}) under ``root``."""
    for relative_path, content in files.items():
        path = root / relative_path
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


def wait_until(predicate, timeout=5.0, interval=0.05):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        JOBS_BASE_DIR=str(tmp_path / "jobs"),
        RESTRICTED_ENVIRONMENT=False,
        OPENAI_API_KEY=None,
        GEMINI_API_KEY=None,
        LOCAL_TRANSLATOR_URL=None,
        LOG_DIR=None,
    )


@pytest.fixture
def translator():
    return UppercaseTranslator()


@pytest.fixture
def job_store():
    return JobStore()


@pytest.fixture
def job_service(settings, job_store, translator):
    registry = TranslatorRegistry({"local": translator}, RuntimeCredentials(settings), settings)
    return JobService(settings=settings, store=job_store, translators=registry)


@pytest.fixture
def make_tree():
    return write_tree


@pytest.fixture
def translator_factory():
    return UppercaseTranslator


@pytest.fixture
def poll():
    return wait_until
