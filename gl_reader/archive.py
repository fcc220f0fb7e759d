"""Extraction of repository archives into lazily read file lists."""

from __future__ import annotations

import functools
import io
import logging
import posixpath
import re
import tarfile
import zipfile
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime

from gl_reader.errors import ArchiveError
from gl_reader.models import TreeFile

logger = logging.getLogger("gl-reader")

_FILENAME_RE = re.compile(r'filename\*?=(?:UTF-8\'\')?"?([^";]+)"?', re.IGNORECASE)


def filename_from_disposition(header: str | None) -> str | None:
    """Suggested filename from a Content-Disposition header."""
    if not header:
        return None
    match = _FILENAME_RE.search(header)
    return match.group(1).strip() if match else None


@dataclass
class ArchiveHandle:
    """A downloaded repository archive and the commit it was taken at."""

    data: bytes = field(repr=False)
    etag: str = ""
    content_type: str | None = None
    filename: str | None = None

    def extract(
        self,
        subpath: str | None = None,
        filter: Callable[[str], bool] | None = None,
        last_modified_at: datetime | None = None,
    ) -> list[TreeFile]:
        return extract_archive(
            self.data,
            content_type=self.content_type,
            filename=self.filename,
            subpath=subpath,
            filter=filter,
            last_modified_at=last_modified_at,
        )


def _normalize(name: str, strip_first_directory: bool, subpath: str | None) -> str | None:
    """Archive member name -> tree-relative path, or None when the member is outside the tree."""
    parts = [p for p in name.replace("\\", "/").split("/") if p and p != "."]
    if ".." in parts:
        logger.warning(f"Skipping archive member outside of the tree: {name}")
        return None
    if strip_first_directory:
        # GitLab wraps the tree in a single <project>-<ref>-<sha>/ directory.
        if len(parts) < 2:
            return None
        parts = parts[1:]
    if subpath:
        prefix = [p for p in subpath.split("/") if p]
        if parts[: len(prefix)] != prefix or len(parts) == len(prefix):
            return None
        parts = parts[len(prefix) :]
    return posixpath.join(*parts) if parts else None


def _read_tar_member(archive: tarfile.TarFile, member: tarfile.TarInfo) -> bytes:
    fh = archive.extractfile(member)
    if fh is None:
        raise ArchiveError(f"Archive member is not a regular file: {member.name}")
    with fh:
        return fh.read()


def extract_archive(
    data: bytes,
    content_type: str | None = None,
    filename: str | None = None,
    subpath: str | None = None,
    strip_first_directory: bool = True,
    filter: Callable[[str], bool] | None = None,
    last_modified_at: datetime | None = None,
) -> list[TreeFile]:
    """
    Turn tar, tar.gz or zip bytes into TreeFiles in archive member order.

    The format is detected from the bytes; GitLab does not always label
    archives accurately, so ``content_type`` and ``filename`` only show up
    in logs. When ``subpath`` is given, the tree is rebased onto it and files
    outside it are dropped. ``filter`` receives the rebased path.
    """
    logger.debug(f"Extracting archive {filename or '<unnamed>'} ({content_type or 'unknown type'}, {len(data)} bytes)")
    buffer = io.BytesIO(data)
    files: list[TreeFile] = []

    if zipfile.is_zipfile(buffer):
        buffer.seek(0)
        zf = zipfile.ZipFile(buffer)
        for info in zf.infolist():
            if info.is_dir():
                continue
            path = _normalize(info.filename, strip_first_directory, subpath)
            if path is None or (filter and not filter(path)):
                continue
            files.append(TreeFile(path=path, loader=functools.partial(zf.read, info), last_modified_at=last_modified_at))
        return files

    buffer.seek(0)
    try:
        archive = tarfile.open(fileobj=buffer, mode="r:*")
    except tarfile.TarError as e:
        raise ArchiveError(f"Unsupported or corrupt archive {filename or ''}: {e}") from e

    for member in archive.getmembers():
        if not member.isfile():
            continue
        path = _normalize(member.name, strip_first_directory, subpath)
        if path is None or (filter and not filter(path)):
            continue
        files.append(
            TreeFile(
                path=path,
                loader=functools.partial(_read_tar_member, archive, member),
                last_modified_at=last_modified_at,
            )
        )
    return files
