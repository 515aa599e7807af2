class SfoRenameError(Exception):
    """Base class for sforename-specific errors."""


# Record decoding
class MalformedRecord(SfoRenameError):
    pass


class BadMagic(MalformedRecord):
    pass


# Archive capture
class TruncatedCapture(SfoRenameError):
    """Embedded record is larger than the capture cap; only a prefix was read."""


# Filesystem
class FilesystemConflict(SfoRenameError):
    def __init__(self, target: str):
        super().__init__(f"Target exists: {target}")
        self.target = target


class FilesystemError(SfoRenameError):
    pass
