"""Path validation and directory creation with fallback locations.

When the requested log directory cannot be created or written to, the
resolver walks an ordered list of fallback directories and reports where
the directory ended up. Nothing here raises for filesystem trouble; the
result object carries the outcome and the caller decides how loud to be.
"""

import logging
import os
import tempfile
from dataclasses import dataclass
from enum import Enum

from ctxlog.errors import InvalidPathError

logger = logging.getLogger(__name__)


class PermissionErrorKind(str, Enum):
    DIRECTORY_CREATE_FAILED = "DIRECTORY_CREATE_FAILED"
    INSUFFICIENT_PERMISSIONS = "INSUFFICIENT_PERMISSIONS"
    FALLBACK_FAILED = "FALLBACK_FAILED"


@dataclass(frozen=True)
class DirectoryResult:
    success: bool
    final_path: str
    original_path: str
    used_fallback: bool
    error_kind: PermissionErrorKind | None = None
    error: str | None = None


def default_fallback_dirs() -> list[str]:
    """Fallback base directories, most preferred first."""
    return [
        os.path.join(tempfile.gettempdir(), "app-logs"),
        os.path.join(os.path.expanduser("~"), ".logs"),
        os.path.join(os.getcwd(), "logs"),
    ]


def validate_file_path(path: str) -> None:
    """Raise InvalidPathError for empty paths or paths with parent-directory segments."""
    if not path or not path.strip():
        raise InvalidPathError(path, "file path cannot be empty")
    parts = path.replace("\\", "/").split("/")
    if ".." in parts:
        raise InvalidPathError(path, "file path contains parent directory references")


def has_write_permission(directory: str) -> bool:
    return os.path.isdir(directory) and os.access(directory, os.W_OK)


def _try_create_directory(directory: str) -> tuple[PermissionErrorKind | None, str | None]:
    try:
        os.makedirs(directory, exist_ok=True)
    except OSError as exc:
        return PermissionErrorKind.DIRECTORY_CREATE_FAILED, f"Failed to create directory {directory}: {exc}"
    if not has_write_permission(directory):
        return PermissionErrorKind.INSUFFICIENT_PERMISSIONS, f"Directory {directory} exists but is not writable"
    return None, None


def resolve_directory(directory: str, fallback_dirs: list[str] | None = None) -> DirectoryResult:
    """Create directory, or the first fallback directory that works."""
    kind, error = _try_create_directory(directory)
    if kind is None:
        return DirectoryResult(True, directory, directory, used_fallback=False)

    if fallback_dirs is None:
        fallback_dirs = default_fallback_dirs()

    for candidate in fallback_dirs:
        fallback_kind, fallback_error = _try_create_directory(candidate)
        if fallback_kind is None:
            logger.debug("Directory %s unusable (%s), falling back to %s", directory, error, candidate)
            return DirectoryResult(True, candidate, directory, used_fallback=True)
        logger.debug("Fallback directory %s unusable: %s", candidate, fallback_error)

    return DirectoryResult(
        success=False,
        final_path=directory,
        original_path=directory,
        used_fallback=False,
        error_kind=PermissionErrorKind.FALLBACK_FAILED,
        error=f"No usable directory for {directory}. Original error: {error}",
    )


def ensure_directory_with_fallback(file_path: str, fallback_dirs: list[str] | None = None) -> DirectoryResult:
    """Make sure the directory holding file_path exists, relocating the file if needed.

    The returned paths are file paths: final_path keeps the original file
    name inside whichever directory could be used.
    """
    directory = os.path.dirname(os.path.abspath(file_path))
    result = resolve_directory(directory, fallback_dirs)
    if not result.used_fallback:
        return DirectoryResult(
            success=result.success,
            final_path=file_path,
            original_path=file_path,
            used_fallback=False,
            error_kind=result.error_kind,
            error=result.error,
        )
    return DirectoryResult(
        success=True,
        final_path=os.path.join(result.final_path, os.path.basename(file_path)),
        original_path=file_path,
        used_fallback=True,
    )
