"""Unit tests for archive extraction."""

import io
import tarfile
from datetime import datetime, timezone

import pytest

from gl_reader.archive import ArchiveHandle, extract_archive, filename_from_disposition
from gl_reader.errors import ArchiveError

from conftest import ARCHIVE_FILES, make_tar_gz, make_zip

NESTED_FILES = {
    "README.md": "readme",
    "docs/index.md": "index",
    "docs/api/endpoints.md": "endpoints",
    "docs-old/index.md": "old",
}


class TestExtractArchive:
    def test_strips_top_level_directory(self, archive_bytes):
        files = extract_archive(archive_bytes)
        assert [f.path for f in files] == ["docs/index.md", "mkdocs.yml"]
        assert files[1].content() == b"site_name: Test\n"

    def test_zip_and_tar_give_same_tree(self):
        tar_files = extract_archive(make_tar_gz(NESTED_FILES))
        zip_files = extract_archive(make_zip(NESTED_FILES))
        assert [f.path for f in tar_files] == [f.path for f in zip_files]
        assert [f.content() for f in tar_files] == [f.content() for f in zip_files]

    def test_uncompressed_tar(self):
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w") as archive:
            info = tarfile.TarInfo("top/file.txt")
            info.size = 2
            archive.addfile(info, io.BytesIO(b"hi"))
        files = extract_archive(buffer.getvalue())
        assert [(f.path, f.content()) for f in files] == [("file.txt", b"hi")]

    def test_keep_first_directory(self, archive_bytes):
        files = extract_archive(archive_bytes, strip_first_directory=False)
        assert [f.path for f in files] == ["mock-main-sha123abc/docs/index.md", "mock-main-sha123abc/mkdocs.yml"]

    def test_subpath_rebases_tree(self):
        files = extract_archive(make_tar_gz(NESTED_FILES), subpath="docs")
        assert [f.path for f in files] == ["index.md", "api/endpoints.md"]

    def test_subpath_is_segment_aligned(self):
        """docs-old is not below docs."""
        files = extract_archive(make_tar_gz(NESTED_FILES), subpath="docs/")
        assert "index.md" in [f.path for f in files]
        assert all(f.content() != b"old" for f in files)

    def test_filter_receives_rebased_path(self):
        seen = []

        def keep_markdown(path):
            seen.append(path)
            return path.startswith("api/")

        files = extract_archive(make_tar_gz(NESTED_FILES), subpath="docs", filter=keep_markdown)

        assert seen == ["index.md", "api/endpoints.md"]
        assert [f.path for f in files] == ["api/endpoints.md"]

    def test_last_modified_is_attached(self, archive_bytes):
        when = datetime(2024, 1, 1, tzinfo=timezone.utc)
        files = extract_archive(archive_bytes, last_modified_at=when)
        assert all(f.last_modified_at == when for f in files)

    def test_content_type_does_not_decide_format(self):
        files = extract_archive(make_zip(ARCHIVE_FILES), content_type="application/x-gzip", filename="mock.tar.gz")
        assert len(files) == 2

    def test_parent_references_are_skipped(self):
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
            for name, data in (("top/../../evil.txt", b"x"), ("top/ok.txt", b"ok")):
                info = tarfile.TarInfo(name)
                info.size = len(data)
                archive.addfile(info, io.BytesIO(data))
        files = extract_archive(buffer.getvalue())
        assert [f.path for f in files] == ["ok.txt"]

    def test_directories_are_not_files(self):
        buffer = io.BytesIO()
        with tarfile.open(fileobj=buffer, mode="w:gz") as archive:
            directory = tarfile.TarInfo("top/docs")
            directory.type = tarfile.DIRTYPE
            archive.addfile(directory)
        assert extract_archive(buffer.getvalue()) == []

    def test_corrupt_archive(self):
        with pytest.raises(ArchiveError):
            extract_archive(b"this is not an archive")


class TestArchiveHandle:
    def test_extract_uses_handle_data(self, archive_bytes):
        handle = ArchiveHandle(data=archive_bytes, etag="sha123abc", content_type="application/gzip")
        files = handle.extract(subpath="docs")
        assert [(f.path, f.content()) for f in files] == [("index.md", b"# Test\n")]

    def test_repr_hides_bytes(self, archive_bytes):
        assert "data" not in repr(ArchiveHandle(data=archive_bytes, etag="sha123abc"))


class TestFilenameFromDisposition:
    @pytest.mark.parametrize(
        "header,expected",
        [
            ('attachment; filename="mock-main-sha123abc.tar.gz"', "mock-main-sha123abc.tar.gz"),
            ("attachment; filename=archive.zip", "archive.zip"),
            ("attachment; filename*=UTF-8''archive.zip", "archive.zip"),
            ("attachment", None),
            (None, None),
            ("", None),
        ],
    )
    def test_parses_header(self, header, expected):
        assert filename_from_disposition(header) == expected
