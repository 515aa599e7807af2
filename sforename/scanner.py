from __future__ import annotations

import fnmatch
import logging
import os
import zipfile
import zlib
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .aggregate import NamingDescriptor, aggregate
from .constants import ARCHIVE_PATTERN, MAX_CAPTURE_SIZE, PARAM_SFO_SUFFIX
from .errors import FilesystemError, TruncatedCapture
from .sfo import decode_sfo


log = logging.getLogger(__name__)


@dataclass
class CapturedRecord:
    name: str
    declared_size: int
    data: bytes

    @property
    def truncated(self) -> bool:
        return len(self.data) < self.declared_size


def _matches(name: str, pattern: str) -> bool:
    return fnmatch.fnmatch(name.lower(), pattern.lower())


def iter_archives(paths: Iterable[str], recursive: bool = False, pattern: str = ARCHIVE_PATTERN) -> Iterable[str]:
    """Yield archive paths from a list of paths and/or directories.

    Args:
        paths: Files or directories to scan. Files are yielded as given.
        recursive: When True, traverse directories recursively.
        pattern: Glob matched (case-insensitively) against names found in directories.
    """
    for p in paths:
        if os.path.isdir(p):
            if recursive:
                for root, dirs, files in os.walk(p):
                    dirs.sort()
                    for fn in sorted(files):
                        if _matches(fn, pattern):
                            yield os.path.join(root, fn)
            else:
                try:
                    entries = sorted(os.listdir(p))
                except OSError as exc:
                    log.warning("Cannot list %s: %s", p, exc)
                    continue
                for fn in entries:
                    full = os.path.join(p, fn)
                    if _matches(fn, pattern) and os.path.isfile(full):
                        yield full
        else:
            yield p


def capture_records(archive: str, *, limit: Optional[int] = None, strict: bool = False) -> List[CapturedRecord]:
    """Read every embedded ``param.sfo`` entry of a zip archive, in archive order.

    Each entry is read once, up to ``limit`` bytes (MAX_CAPTURE_SIZE when None).
    A larger entry is kept as the captured prefix and logged, unless ``strict``
    asks for TruncatedCapture.

    Raises:
        FilesystemError: The archive cannot be opened or an entry cannot be read.
        TruncatedCapture: ``strict`` is set and an entry exceeds ``limit``.
    """
    if limit is None:
        limit = MAX_CAPTURE_SIZE
    out: List[CapturedRecord] = []
    try:
        with zipfile.ZipFile(archive) as zf:
            for info in zf.infolist():
                if info.is_dir() or not info.filename.endswith(PARAM_SFO_SUFFIX):
                    continue
                with zf.open(info) as fh:
                    data = fh.read(limit)
                rec = CapturedRecord(name=info.filename, declared_size=info.file_size, data=data)
                log.debug("SFO: '%s' with %d bytes, got %d bytes", rec.name, rec.declared_size, len(data))
                if rec.truncated:
                    if strict:
                        raise TruncatedCapture(
                            f"{archive}:{rec.name}: captured {len(data)} of {rec.declared_size} bytes"
                        )
                    log.warning(
                        "%s:%s: captured %d of %d bytes; decoding the prefix",
                        archive,
                        rec.name,
                        len(data),
                        rec.declared_size,
                    )
                out.append(rec)
    except (OSError, ValueError, zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError, RuntimeError) as exc:
        raise FilesystemError(f"Cannot read archive {archive}: {exc}") from exc
    return out


def describe_archive(archive: str, *, strict: bool = False) -> NamingDescriptor:
    """Fold every embedded record of ``archive`` into its naming descriptor."""
    log.debug("File: '%s'", archive)
    return aggregate(decode_sfo(rec.data) for rec in capture_records(archive, strict=strict))
