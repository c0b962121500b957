"""
Storage adapter — opaque byte blobs at filesystem paths.

The vault core never opens files itself; it hands serialized records to
:func:`write_blob_atomically` and reads them back with :func:`read_blob`.

Writes go to a temporary file in the destination directory, are fsync'ed,
and then renamed over the target, so a crash mid-write leaves either the
old file or the new one, never a truncated mix. The directory is flushed
after the rename so the new entry survives a crash as well.

Known limitation: there is no inter-process locking. Two processes
writing the same vault concurrently is undefined behavior.
"""
import os
import logging
import tempfile
from pathlib import Path

from .exceptions import StorageError

logger = logging.getLogger("lockbox.storage")


def blob_exists(path: Path) -> bool:
    """Return True if a non-empty file exists at ``path``."""
    path = Path(path)
    return path.is_file() and path.stat().st_size > 0


def read_blob(path: Path) -> bytes:
    """Read the whole file at ``path``.

    Raises:
        FileNotFoundError: If nothing exists at ``path``.
        StorageError: Any other I/O failure.
    """
    try:
        return Path(path).read_bytes()
    except FileNotFoundError:
        raise
    except OSError as err:
        raise StorageError(f"Failed to read '{path}': {err}") from err


def write_blob_atomically(path: Path, data: bytes) -> None:
    """Replace the file at ``path`` with ``data`` in one rename.

    Missing parent directories are created with owner-only permissions.

    Raises:
        StorageError: If the temporary file cannot be written or renamed.
            The previous file content is left untouched.
    """
    path = Path(path)
    try:
        path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
        )
    except OSError as err:
        raise StorageError(f"Failed to write '{path}': {err}") from err
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except OSError as err:
        # Clean up temp file on failure
        if os.path.exists(tmp_path):
            os.remove(tmp_path)
        raise StorageError(f"Failed to write '{path}': {err}") from err
    # the rename already happened; a failed directory flush is not a failed write
    try:
        _fsync_directory(path.parent)
    except OSError as err:
        logger.warning("Could not flush directory %s: %s", path.parent, err)
    logger.debug("Wrote %d bytes to %s", len(data), path)


def _fsync_directory(directory: Path) -> None:
    """Persist a rename by flushing its directory entry.

    Windows cannot open directories as files; there the rename is durable
    once ``os.replace`` returns.
    """
    if os.name == "nt":
        return
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def list_blobs(directory: Path, suffix: str) -> list[Path]:
    """List files ending in ``suffix`` inside ``directory``, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        return []
    return sorted(
        p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix)
    )
