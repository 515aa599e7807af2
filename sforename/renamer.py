from __future__ import annotations

import errno
import logging
import os
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, Optional

from .aggregate import NamingDescriptor
from .errors import FilesystemConflict, FilesystemError, TruncatedCapture
from .scanner import describe_archive


log = logging.getLogger(__name__)

STATUS_OK = "ok"
STATUS_EXISTS = "exists"
STATUS_UNCHANGED = "unchanged"
STATUS_SKIPPED = "skipped"
STATUS_DRY_RUN = "dry-run"
STATUS_ERROR = "error"

# Errnos meaning "this filesystem cannot hard link", not "the rename failed"
_NO_LINK_ERRNOS = {errno.EPERM, errno.EXDEV, errno.EMLINK, errno.EOPNOTSUPP}
if hasattr(errno, "ENOTSUP"):
    _NO_LINK_ERRNOS.add(errno.ENOTSUP)

_target_locks: Dict[str, _TargetLock] = {}
_target_locks_guard = threading.Lock()


@dataclass
class RenameOutcome:
    source: str
    status: str
    target: Optional[str] = None
    message: Optional[str] = None
    descriptor: Optional[NamingDescriptor] = field(default=None, repr=False)

    def as_dict(self) -> Dict[str, Any]:
        res: Dict[str, Any] = {"source": self.source, "target": self.target, "status": self.status}
        if self.message:
            res["message"] = self.message
        d = self.descriptor
        if d is not None and not d.empty:
            res.update(
                title=d.title,
                app_ver=d.app_ver,
                version=d.version,
                ac_count=d.ac_count,
                title_id=d.title_id,
                region=d.region,
            )
        return res


def target_path(source: str, descriptor: NamingDescriptor) -> str:
    """Path of the renamed archive: same directory, same extension as ``source``."""
    _root, ext = os.path.splitext(source)
    return os.path.join(os.path.dirname(source), descriptor.filename(ext))


class _TargetLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


@contextmanager
def _locked_target(target: str) -> Iterator[None]:
    """Serialize workers renaming onto one target; the entry is dropped when the last one leaves."""
    key = os.path.normcase(os.path.abspath(target))
    with _target_locks_guard:
        entry = _target_locks.get(key)
        if entry is None:
            entry = _target_locks[key] = _TargetLock()
        entry.users += 1
    try:
        with entry.lock:
            yield
    finally:
        with _target_locks_guard:
            entry.users -= 1
            if entry.users == 0:
                del _target_locks[key]


def _same_file(a: str, b: str) -> bool:
    try:
        return os.path.samefile(a, b)
    except OSError:
        return False


def _is_respelling(source: str, target: str) -> bool:
    """True when ``target`` names the ``source`` file itself under another spelling.

    On a case-insensitive filesystem ``Dump.zip`` and ``DUMP.zip`` resolve to one
    inode although only one of them is listed. A second hard link to the same
    inode is listed under its own name and is an existing file like any other.
    """
    if not _same_file(source, target):
        return False
    parent = os.path.dirname(target) or os.curdir
    try:
        listed = os.listdir(parent)
    except OSError:
        return False
    return os.path.basename(target) not in listed


def _taken(source: str, target: str) -> bool:
    return os.path.lexists(target) and not _is_respelling(source, target)


def _rename_checked(source: str, target: str) -> None:
    # Check and rename are two steps here. The per-target lock serializes
    # workers of this process; other processes can still race on the name.
    with _locked_target(target):
        if _taken(source, target):
            raise FilesystemConflict(target)
        os.rename(source, target)


def rename_archive(source: str, target: str) -> None:
    """Move ``source`` to ``target`` without ever replacing an existing file.

    The target is created as a hard link, which fails atomically if the name
    is taken, and the source name is removed afterwards. Filesystems without
    hard links fall back to a locked check-then-rename.

    Raises:
        FilesystemConflict: ``target`` already exists, including as another
            hard link to the source.
        FilesystemError: The move failed for any other reason.
    """
    try:
        try:
            os.link(source, target, follow_symlinks=False)
        except FileExistsError:
            if not _is_respelling(source, target):
                raise FilesystemConflict(target)
            os.rename(source, target)
            return
        except NotImplementedError:
            _rename_checked(source, target)
            return
        except OSError as exc:
            if exc.errno not in _NO_LINK_ERRNOS:
                raise
            log.debug("Hard link unavailable for %s (%s); using checked rename", target, exc)
            _rename_checked(source, target)
            return
        try:
            os.unlink(source)
        except OSError:
            os.unlink(target)
            raise
    except FilesystemConflict:
        raise
    except OSError as exc:
        raise FilesystemError(f"Cannot rename {source} to {target}: {exc}") from exc


def process_archive(source: str, *, dry_run: bool = False, strict: bool = False) -> RenameOutcome:
    """Describe and rename one archive. Never raises for a single bad archive.

    With ``strict``, an embedded record larger than the capture limit is an
    error instead of being decoded from its prefix.
    """
    try:
        desc = describe_archive(source, strict=strict)
    except (FilesystemError, TruncatedCapture) as exc:
        return RenameOutcome(source=source, status=STATUS_ERROR, message=str(exc))
    if desc.empty:
        return RenameOutcome(source=source, status=STATUS_SKIPPED, message="no APP_VER in any param.sfo", descriptor=desc)

    target = target_path(source, desc)
    res = RenameOutcome(source=source, status=STATUS_OK, target=target, descriptor=desc)
    if os.path.basename(target) == os.path.basename(source):
        res.status = STATUS_UNCHANGED
        return res
    if dry_run:
        res.status = STATUS_EXISTS if _taken(source, target) else STATUS_DRY_RUN
        return res
    try:
        rename_archive(source, target)
    except FilesystemConflict as exc:
        res.status = STATUS_EXISTS
        res.message = str(exc)
    except FilesystemError as exc:
        res.status = STATUS_ERROR
        res.message = str(exc)
    return res
