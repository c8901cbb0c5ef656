class MicroblogError(Exception):
    """Base class for errors raised by the storage layer"""


class NotFoundError(MicroblogError):
    """The requested post, or any post for the requested author, does not exist"""


class StorageError(MicroblogError):
    """The backend failed (connectivity, driver or timeout)"""


class InvalidCursorError(MicroblogError):
    """The pagination token or page size is malformed, or pagination is exhausted"""
