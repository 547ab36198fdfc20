import asyncio
import os

import pytest

from tree_translator.models.job import SourceType
from tree_translator.workflow import CancellationToken, PipelineCancelledError, run_translation_pipeline

ALLOWED = [".md", ".txt"]
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256))


async def _run(input_root, output_root, translate, **kwargs):
    kwargs.setdefault("allowed_extensions", ALLOWED)
    kwargs.setdefault("max_file_size_bytes", 1024)
    return await run_translation_pipeline(str(input_root), str(output_root), translate=translate, **kwargs)


@pytest.mark.integration
class TestTranslationPipeline:
    @pytest.mark.asyncio
    async def test_translates_docs_and_copies_the_rest(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {
            "docs/readme.md": "hello",
            "src/index.ts": "const x = 1;",
            "assets/logo.png": PNG_BYTES,
        })
        output = tmp_path / "out"

        result = await _run(source, output, translator.translate)

        assert (result.total_files, result.processed_files, result.failed_files) == (3, 3, 0)
        assert result.errors == []
        assert (output / "docs" / "readme.md").read_text(encoding="utf-8") == "HELLO"
        assert (output / "src" / "index.ts").read_bytes() == b"const x = 1;"
        assert (output / "assets" / "logo.png").read_bytes() == PNG_BYTES
        assert translator.calls == ["docs/readme.md"]

    @pytest.mark.asyncio
    async def test_context_carries_job_settings(self, tmp_path, make_tree):
        source = make_tree(tmp_path / "in", {"a.md": "x"})
        seen = []

        async def translate(text, context):
            seen.append(context)
            return text

        await _run(source, tmp_path / "out", translate,
                   source_type=SourceType.REMOTE_REPOSITORY, target_language="Japanese", model="m-1")

        assert len(seen) == 1
        assert seen[0].relative_path == "a.md"
        assert seen[0].source_type == SourceType.REMOTE_REPOSITORY
        assert seen[0].target_language == "Japanese"
        assert seen[0].model == "m-1"
        assert seen[0].cancel_token is not None

    @pytest.mark.asyncio
    async def test_partial_failure_copies_original(self, tmp_path, make_tree, translator_factory):
        translator = translator_factory(fail_on={"b.md"})
        source = make_tree(tmp_path / "in", {"a.md": "a", "b.md": "b original", "c.md": "c"})
        output = tmp_path / "out"

        result = await _run(source, output, translator.translate)

        assert (result.processed_files, result.failed_files) == (3, 1)
        assert [(e.relative_path, e.message) for e in result.errors] == [("b.md", "boom: b.md")]
        assert (output / "a.md").read_text() == "A"
        assert (output / "b.md").read_text() == "b original"
        assert (output / "c.md").read_text() == "C"

    @pytest.mark.asyncio
    async def test_all_files_failing_still_completes(self, tmp_path, make_tree):
        async def broken(text, context):
            raise RuntimeError("no api key")

        source = make_tree(tmp_path / "in", {"a.md": "a", "b.txt": "b"})
        result = await _run(source, tmp_path / "out", broken)

        assert result.failed_files == result.processed_files == result.total_files == 2
        assert [e.relative_path for e in result.errors] == ["a.md", "b.txt"]

    @pytest.mark.asyncio
    async def test_oversized_and_binary_are_copied(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {
            "big.md": "x" * 1025,
            "exact.md": "y" * 1024,
            "binary.md": b"\x00\x01\x02\x03" * 10,
        })
        output = tmp_path / "out"

        result = await _run(source, output, translator.translate)

        assert result.failed_files == 0
        assert translator.calls == ["exact.md"]
        assert (output / "big.md").read_text() == "x" * 1025
        assert (output / "exact.md").read_text() == "Y" * 1024
        assert (output / "binary.md").read_bytes() == b"\x00\x01\x02\x03" * 10

    @pytest.mark.asyncio
    async def test_non_utf8_text_is_translated_with_replacement_characters(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {"notes.md": "café menu".encode("latin-1")})
        output = tmp_path / "out"

        result = await _run(source, output, translator.translate, allowed_extensions=[".md"])

        assert (result.processed_files, result.failed_files) == (1, 0)
        assert translator.calls == ["notes.md"]
        assert (output / "notes.md").read_text(encoding="utf-8") == "CAF\ufffd MENU"

    @pytest.mark.asyncio
    async def test_ignored_directories_are_not_copied(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {"node_modules/x/readme.md": "x", ".git/HEAD": "ref", "a.md": "a"})
        output = tmp_path / "out"

        result = await _run(source, output, translator.translate)

        assert result.total_files == 1
        assert sorted(os.listdir(output)) == ["a.md"]

    @pytest.mark.asyncio
    async def test_empty_tree(self, tmp_path, translator):
        (tmp_path / "in").mkdir()
        result = await _run(tmp_path / "in", tmp_path / "out", translator.translate)
        assert (result.total_files, result.processed_files, result.failed_files) == (0, 0, 0)
        assert (tmp_path / "out").is_dir()

    @pytest.mark.asyncio
    async def test_rerun_gives_identical_output(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {"docs/a.md": "a", "b.bin": PNG_BYTES})
        output = tmp_path / "out"

        await _run(source, output, translator.translate)
        first = {p: (output / p).read_bytes() for p in ("docs/a.md", "b.bin")}
        await _run(source, output, translator.translate)
        second = {p: (output / p).read_bytes() for p in ("docs/a.md", "b.bin")}

        assert first == second

    @pytest.mark.asyncio
    async def test_progress_is_monotonic_and_consistent(self, tmp_path, make_tree, translator_factory):
        translator = translator_factory(fail_on={"b.md"})
        source = make_tree(tmp_path / "in", {"a.md": "a", "b.md": "b", "c.txt": "c", "d.ts": "d"})
        events = []

        await _run(source, tmp_path / "out", translator.translate, on_progress=events.append)

        assert [e.processed_files for e in events] == [1, 2, 3, 4]
        assert [e.current_file for e in events] == ["a.md", "b.md", "c.txt", "d.ts"]
        assert all(e.total_files == 4 for e in events)
        assert all(len(e.errors) == e.failed_files for e in events)
        assert [e.failed_files for e in events] == [0, 1, 1, 1]

    @pytest.mark.asyncio
    async def test_async_progress_callback_is_awaited(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {"a.md": "a", "b.md": "b"})
        seen = []

        async def on_progress(progress):
            await asyncio.sleep(0)
            seen.append(progress.processed_files)

        await _run(source, tmp_path / "out", translator.translate, on_progress=on_progress)
        assert seen == [1, 2]

    @pytest.mark.asyncio
    async def test_cancel_before_start(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {"a.md": "a"})
        token = CancellationToken()
        token.cancel()

        with pytest.raises(PipelineCancelledError):
            await _run(source, tmp_path / "out", translator.translate, cancel_token=token)
        assert translator.calls == []

    @pytest.mark.asyncio
    async def test_cancel_between_files(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {"a.md": "a", "b.md": "b", "c.md": "c"})
        token = CancellationToken()

        def on_progress(progress):
            if progress.processed_files == 1:
                token.cancel()

        with pytest.raises(PipelineCancelledError):
            await _run(source, tmp_path / "out", translator.translate, on_progress=on_progress, cancel_token=token)
        assert translator.calls == ["a.md"]
        assert not (tmp_path / "out" / "b.md").exists()

    @pytest.mark.asyncio
    async def test_cancel_aborts_in_flight_translation(self, tmp_path, make_tree):
        source = make_tree(tmp_path / "in", {"a.md": "a", "b.md": "b"})
        token = CancellationToken()
        started = asyncio.Event()

        async def slow(text, context):
            started.set()
            await asyncio.sleep(30)
            return text

        async def cancel_soon():
            await started.wait()
            token.cancel()

        canceller = asyncio.ensure_future(cancel_soon())
        with pytest.raises(PipelineCancelledError):
            await asyncio.wait_for(_run(source, tmp_path / "out", slow, cancel_token=token), timeout=5)
        await canceller

    @pytest.mark.asyncio
    async def test_error_after_cancel_is_not_a_file_failure(self, tmp_path, make_tree):
        source = make_tree(tmp_path / "in", {"a.md": "a"})
        token = CancellationToken()

        async def cancel_then_fail(text, context):
            context.cancel_token.cancel()
            raise RuntimeError("aborted by client")

        with pytest.raises(PipelineCancelledError):
            await _run(source, tmp_path / "out", cancel_then_fail, cancel_token=token)

    @pytest.mark.asyncio
    async def test_readme_and_source_scenario(self, tmp_path, make_tree, translator):
        source = make_tree(tmp_path / "in", {"docs/readme.md": "Hello world", "src/index.ts": "const a = 1;"})
        output = tmp_path / "out"

        result = await _run(source, output, translator.translate, allowed_extensions=[".md"])

        assert (result.total_files, result.failed_files) == (2, 0)
        assert (output / "docs" / "readme.md").read_text() == "HELLO WORLD"
        assert (output / "src" / "index.ts").read_text() == "const a = 1;"

    @pytest.mark.asyncio
    async def test_file_removed_after_scan_is_a_file_failure(self, tmp_path, make_tree):
        source = make_tree(tmp_path / "in", {"a.md": "a", "b.md": "b"})

        async def translate_and_remove_next(text, context):
            (source / "b.md").unlink(missing_ok=True)
            return text

        result = await _run(source, tmp_path / "out", translate_and_remove_next)

        assert (result.total_files, result.processed_files, result.failed_files) == (2, 2, 1)
        assert result.errors[0].relative_path == "b.md"
        assert result.errors[0].message == "No such file or directory"
        assert str(tmp_path) not in result.errors[0].message
        assert not (tmp_path / "out" / "b.md").exists()
