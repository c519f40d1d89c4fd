"""
Schema bundle extraction.

Service schema bundles are published as tar archives, optionally
gzip/bzip2/xz compressed. Zip archives are accepted as well.
"""

import io
import posixpath
import lzma
import tarfile
import zipfile
import zlib
from typing import Dict

import structlog

from shared.utils.errors import BundleExtractionError


logger = structlog.get_logger(__name__)

_ARCHIVE_ERRORS = (tarfile.TarError, zipfile.BadZipFile, lzma.LZMAError, zlib.error, EOFError, OSError, ValueError)


def extract_bundle(raw: bytes) -> Dict[str, bytes]:
    """Return ``{file name: content}`` for every regular file in the archive, in archive order."""
    if not raw:
        return {}

    try:
        if zipfile.is_zipfile(io.BytesIO(raw)):
            files = _extract_zip(raw)
        else:
            files = _extract_tar(raw)
    except _ARCHIVE_ERRORS as e:
        raise BundleExtractionError(f"Unreadable schema bundle: {e}", size=len(raw)) from e

    logger.debug("Bundle extracted", files=list(files))
    return files


def _extract_tar(raw: bytes) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    with tarfile.open(fileobj=io.BytesIO(raw), mode="r:*") as archive:
        for member in archive:
            if not member.isfile():
                continue
            handle = archive.extractfile(member)
            if handle is None:
                continue
            with handle:
                files[_member_name(member.name)] = handle.read()
    return files


def _extract_zip(raw: bytes) -> Dict[str, bytes]:
    files: Dict[str, bytes] = {}
    with zipfile.ZipFile(io.BytesIO(raw)) as archive:
        for info in archive.infolist():
            if info.is_dir():
                continue
            files[_member_name(info.filename)] = archive.read(info)
    return files


def _member_name(name: str) -> str:
    # "./service.proto" and "service.proto" name the same import path
    return posixpath.normpath(name).lstrip("/")
