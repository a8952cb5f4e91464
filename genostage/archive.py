# File: genostage/archive.py
# Location: genostage/genostage/archive.py

"""
Archive resolution module.

Locates the payload a caller asked for inside a provider delivery. A source
may be a plain file, a gzip-compressed file, or a gzip-compressed tarball
holding many files. Compression and tar containers are recognised by
filename suffix (``.gz`` and ``tar.gz``, any case); an optional magic-byte
check can be switched on for gzip files with a misleading name.

The result is a binary stream positioned at the start of the logical file.
The caller owns it and must close it, which closes every layer beneath.
"""

import gzip
import logging
import os
import shutil
import tarfile
import zlib
from typing import IO, Iterator, List, Optional, Union

from .constants import GZIP_EXTENSION, GZIP_MAGIC, TAR_GZIP_EXTENSION, TUMOR_TYPE_TAG
from .pipeline_core.error_handling import UnreadableSourceError
from .utils import remove_gzip_extension, to_local_path

logger = logging.getLogger("genostage")

# Errors raised by gzip/tarfile for corrupt or truncated archives
ARCHIVE_ERRORS = (OSError, EOFError, zlib.error, tarfile.TarError)


class ResolvedStream:
    """
    Binary stream for a resolved logical file.

    Wraps the innermost readable stream together with the layers it reads
    from (tar container, gzip decoder, file handle) so one ``close`` call
    releases all of them.
    """

    def __init__(self, stream: IO[bytes], *layers, name: str = "", entry_name: Optional[str] = None):
        self._stream = stream
        self._layers = layers
        self.name = name
        self.entry_name = entry_name
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        return self._stream.read(size)

    def readline(self, size: int = -1) -> bytes:
        return self._stream.readline(size)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._stream)

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        for layer in (self._stream,) + self._layers:
            try:
                layer.close()
            except ARCHIVE_ERRORS as e:
                logger.debug(f"Ignoring error while closing {self.name}: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        if self.entry_name:
            return f"ResolvedStream(name='{self.name}', entry='{self.entry_name}')"
        return f"ResolvedStream(name='{self.name}')"


def is_gzip_filename(path: str) -> bool:
    """Return True if the filename says the content is gzip-compressed."""
    return path.lower().endswith(GZIP_EXTENSION)


def is_tar_gzip_filename(path: str) -> bool:
    """Return True if the filename says the content is a gzip-compressed tarball."""
    return path.lower().endswith(TAR_GZIP_EXTENSION)


def substitute_tumor_type(logical_filename: str, tumor_type_label: Optional[str]) -> str:
    """
    Replace the tumor-type tag in a data filename with a study's label.

    Parameters
    ----------
    logical_filename : str
        Data filename, possibly containing ``<TUMOR_TYPE>``.
    tumor_type_label : str or None
        Label to substitute. When None the filename is returned unchanged.

    Returns
    -------
    str
        The filename to look for inside an archive.
    """
    if tumor_type_label is None or TUMOR_TYPE_TAG not in logical_filename:
        return logical_filename
    return logical_filename.replace(TUMOR_TYPE_TAG, tumor_type_label)


def _has_gzip_magic(handle: IO[bytes]) -> bool:
    magic = handle.read(len(GZIP_MAGIC))
    handle.seek(0)
    return magic == GZIP_MAGIC


def _close_all(layers: List) -> None:
    for layer in layers:
        try:
            layer.close()
        except ARCHIVE_ERRORS:
            pass


def resolve(
    path: Union[str, os.PathLike],
    logical_filename: str,
    tumor_type_label: Optional[str] = None,
    detect_by_content: bool = False,
) -> Optional[ResolvedStream]:
    """
    Produce a byte stream positioned at the start of the desired logical file.

    Parameters
    ----------
    path : str or PathLike
        Source file path or ``file://`` URL.
    logical_filename : str
        The data file the caller wants. For tarballs, the first regular
        entry whose name contains this string is selected.
    tumor_type_label : str, optional
        Replaces ``<TUMOR_TYPE>`` in ``logical_filename`` before matching.
    detect_by_content : bool
        Also treat the file as gzip when it starts with the gzip magic
        bytes even though its name lacks a ``.gz`` suffix.

    Returns
    -------
    ResolvedStream or None
        Stream over the logical file, or None when a tarball holds no
        matching entry.

    Raises
    ------
    UnreadableSourceError
        If the file cannot be opened or the archive is corrupt.
    """
    local_path = to_local_path(path)
    logger.info(f"Resolving file contents: {local_path}")

    try:
        raw = open(local_path, "rb")
    except OSError as e:
        raise UnreadableSourceError(local_path, e.strerror or str(e), stage="resolve")

    try:
        compressed = is_gzip_filename(local_path) or (detect_by_content and _has_gzip_magic(raw))
    except OSError as e:
        raw.close()
        raise UnreadableSourceError(local_path, str(e), stage="resolve")

    if not compressed:
        return ResolvedStream(raw, name=local_path)

    logger.info(f"Decompressing: {local_path}")
    unzipped = gzip.GzipFile(fileobj=raw, mode="rb")

    if not is_tar_gzip_filename(local_path):
        return ResolvedStream(unzipped, raw, name=local_path)

    target = substitute_tumor_type(logical_filename, tumor_type_label)
    logger.info(f"Gzip file is a tarball, looking for entry matching '{target}'")

    tar = None
    try:
        tar = tarfile.open(fileobj=unzipped, mode="r|")
        for member in tar:
            if not member.isfile() or target not in member.name:
                continue
            logger.info(f"Processing tar entry: {member.name}")
            entry = tar.extractfile(member)
            return ResolvedStream(entry, tar, unzipped, raw, name=local_path, entry_name=member.name)
    except ARCHIVE_ERRORS as e:
        _close_all([layer for layer in (tar, unzipped, raw) if layer is not None])
        raise UnreadableSourceError(local_path, f"corrupt archive ({e})", stage="resolve")

    logger.info(f"No entry matching '{target}' found in tarball {local_path}")
    _close_all([tar, unzipped, raw])
    return None


def gunzip_file(gzip_path: Union[str, os.PathLike]) -> str:
    """
    Decompress a gzip file next to itself, dropping the ``.gz`` suffix.

    Parameters
    ----------
    gzip_path : str or PathLike
        Path of the compressed file.

    Returns
    -------
    str
        Path of the decompressed file.

    Raises
    ------
    UnreadableSourceError
        If the file is missing or not valid gzip data.
    """
    local_path = to_local_path(gzip_path)
    out_path = remove_gzip_extension(local_path)
    if out_path == local_path:
        raise UnreadableSourceError(local_path, "filename has no .gz suffix", stage="gunzip")

    try:
        gis = gzip.open(local_path, "rb")
    except OSError as e:
        raise UnreadableSourceError(local_path, e.strerror or str(e), stage="gunzip")

    try:
        with gis, open(out_path, "wb") as fos:
            shutil.copyfileobj(gis, fos)
    except ARCHIVE_ERRORS as e:
        if os.path.exists(out_path):
            os.remove(out_path)
        raise UnreadableSourceError(local_path, str(e), stage="gunzip")

    logger.debug(f"Decompressed {local_path} -> {out_path}")
    return out_path
