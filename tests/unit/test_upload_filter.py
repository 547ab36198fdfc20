import pytest

from tree_translator.core.upload_filter import UploadEntry, partition_upload_files, should_ignore_upload_path


@pytest.mark.unit
def test_skips_files_under_ignored_directories_and_keeps_normal_docs():
    entries = [
        UploadEntry("docs/readme.md", b"a"),
        UploadEntry("node_modules/pkg/index.js", b"b"),
        UploadEntry(".git/config", b"c"),
        UploadEntry(".next/server/chunk.js", b"d"),
        UploadEntry("src/guide.txt", b"e"),
    ]

    accepted, skipped = partition_upload_files(entries)

    assert [entry.path for entry in accepted] == ["docs/readme.md", "src/guide.txt"]
    assert [entry.path for entry in skipped] == [
        "node_modules/pkg/index.js",
        ".git/config",
        ".next/server/chunk.js",
    ]


@pytest.mark.unit
@pytest.mark.parametrize("path, ignored", [
    ("", True),
    ("///", True),
    ("project\\dist\\app.js", True),
    ("/build/out.txt", True),
    ("docs/distribution.md", False),
    ("guide.md", False),
])
def test_should_ignore_upload_path(path, ignored):
    assert should_ignore_upload_path(path) is ignored
