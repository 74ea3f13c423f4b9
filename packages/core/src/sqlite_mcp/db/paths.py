"""Database path validation and canonicalization."""

import os

from sqlite_mcp.errors import InvalidPath


def resolve_db_path(raw_path) -> str:
    """Validate a user-supplied database path and return its canonical form.

    The canonical form is absolute and OS-normalized; it is the key of the
    connection cache. No filesystem access happens here.

    Args:
        raw_path: Path as received from the caller.

    Returns:
        Absolute, normalized path string.

    Raises:
        InvalidPath: If the path is empty, not a string, or contains ``..``.
    """
    if not isinstance(raw_path, (str, os.PathLike)):
        raise InvalidPath("Database path must be a string", path=raw_path)

    path = os.fspath(raw_path)
    if not isinstance(path, str) or not path.strip():
        raise InvalidPath("Database path must not be empty", path=raw_path)

    if ".." in path:
        raise InvalidPath("Parent directory traversal is not allowed", path=path)

    if "\x00" in path:
        raise InvalidPath("Database path contains a NUL character", path=path)

    return os.path.abspath(os.path.expanduser(path))
