"""Append-only log file with size- or date-based rotation and archiving."""

import logging
import os

from ctxlog.archive import ActiveFileState, ArchiveManager, RotationOutcome
from ctxlog.config import RotationConfig, RotationMethod, default_archive_dir
from ctxlog.dates import format_bucket
from ctxlog.levels import LevelFilter
from ctxlog.permissions import default_fallback_dirs, resolve_directory
from ctxlog.policy import needs_rotation
from ctxlog.transports import FileTransport

logger = logging.getLogger(__name__)


class RotatingFileTransport(FileTransport):
    """File transport that rotates before an entry would land in a stale file.

    write() runs stat, the rotation decision, the rotation itself and the
    append under one lock, so callers in the same process never observe a
    half-rotated file. Rotation is best-effort: its failures are warnings,
    and the entry is still appended wherever the active path points.
    """

    def __init__(
        self,
        path: str,
        config: RotationConfig,
        name: str | None = None,
        level_filter: LevelFilter = None,
        colors=None,
        fallback_dirs: list[str] | None = None,
        time_func=None,
    ):
        super().__init__(path, name, level_filter, colors, fallback_dirs, time_func)
        self._config = config
        self._state = ActiveFileState(path=self._path)
        self._archive = ArchiveManager(
            config, self._prepare_archive_dir(config, fallback_dirs), self._time_func
        )
        self.last_outcome: RotationOutcome | None = None

        if config.method is RotationMethod.DATE:
            self._state.current_bucket = format_bucket(self._time_func(), config.date_bucket)

    def _prepare_archive_dir(self, config: RotationConfig, fallback_dirs: list[str] | None) -> str:
        requested = config.archive_dir or default_archive_dir(self.name)
        leaf = os.path.basename(os.path.normpath(requested))
        # The archive never shares a directory with a relocated active file.
        bases = fallback_dirs if fallback_dirs is not None else default_fallback_dirs()
        candidates = [os.path.join(base, leaf) for base in bases]
        result = resolve_directory(requested, candidates)
        if not result.success:
            logger.warning("Failed to create archive directory %s: %s", requested, result.error)
            return requested
        if result.used_fallback:
            logger.warning(
                "RotatingFileTransport: Using fallback archive directory. Original: %s, Fallback: %s",
                requested, result.final_path,
            )
        return result.final_path

    @property
    def path(self) -> str:
        return self._state.path

    @property
    def config(self) -> RotationConfig:
        return self._config

    @property
    def archive_dir(self) -> str:
        return self._archive.archive_dir

    @property
    def current_bucket(self) -> str | None:
        return self._state.current_bucket

    def _append(self, entry: str) -> None:
        pending_bytes = len(entry.encode("utf-8", errors="replace"))
        try:
            current_size = os.path.getsize(self.path)
            exists = True
        except FileNotFoundError:
            current_size, exists = 0, False

        now_bucket = None
        if self._config.method is RotationMethod.DATE:
            now_bucket = format_bucket(self._time_func(), self._config.date_bucket)

        if needs_rotation(exists, current_size, pending_bytes, self._state.current_bucket, now_bucket, self._config):
            self.last_outcome = self._archive.rotate(self.path, self._state)
            if self.last_outcome.rotated:
                logger.debug("Rotated %s -> %s", self.path, self.last_outcome.rotated_path)

        super()._append(entry)
