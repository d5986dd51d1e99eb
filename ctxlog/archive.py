"""Rotation execution: numbered-sibling shifting, archiving, compression, retention.

Every filesystem call in here is guarded on its own. A failed rename,
compression or deletion is logged as a warning, recorded on the
RotationOutcome, and the rest of the pass carries on. Nothing propagates
to the writer.
"""

import gzip
import logging
import os
import re
import shutil
from dataclasses import dataclass, field
from datetime import timedelta

from ctxlog.config import RotationConfig, RotationMethod
from ctxlog.dates import format_bucket, utc_now

logger = logging.getLogger(__name__)


@dataclass
class ActiveFileState:
    path: str
    current_bucket: str | None = None


@dataclass
class RotationOutcome:
    rotated: bool = False  # active path is free for the next append
    rotated_path: str | None = None
    archived: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def compress_file(source: str, target: str) -> str:
    """Gzip-compress source into target, then remove source. Returns target."""
    with open(source, "rb") as f_in, gzip.open(target, "wb") as f_out:
        shutil.copyfileobj(f_in, f_out)
    os.remove(source)
    return target


def split_log_name(path: str) -> tuple[str, str, str]:
    """Return (directory, base name, extension) for a log file path."""
    base, ext = os.path.splitext(os.path.basename(path))
    return os.path.dirname(path), base, ext


def date_file_pattern(base: str, ext: str) -> re.Pattern:
    """Match date-suffixed siblings: base.YYYY-MM[-DD[-HH]][.N]ext"""
    return re.compile(
        rf"^{re.escape(base)}\.\d{{4}}-\d{{2}}(?:-\d{{2}}){{0,2}}(?:\.\d+)?{re.escape(ext)}$"
    )


class ArchiveManager:
    def __init__(self, config: RotationConfig, archive_dir: str, time_func=None):
        self._config = config
        self._archive_dir = archive_dir
        self._time_func = time_func or utc_now

    @property
    def archive_dir(self) -> str:
        return self._archive_dir

    def _warn(self, warnings: list[str] | None, message: str, *args) -> None:
        text = message % args
        logger.warning("%s", text)
        if warnings is not None:
            warnings.append(text)

    def rotate(self, active_path: str, state: ActiveFileState) -> RotationOutcome:
        """Retire the active file according to the configured method."""
        outcome = RotationOutcome()
        if not os.path.exists(active_path):
            return outcome

        try:
            os.makedirs(self._archive_dir, exist_ok=True)
        except OSError as exc:
            self._warn(
                outcome.warnings,
                "Failed to create archive directory %s, skipping rotation: %s",
                self._archive_dir, exc,
            )
            return outcome

        if self._config.method is RotationMethod.SIZE:
            self._rotate_by_size(active_path, outcome)
        else:
            self._rotate_by_date(active_path, state, outcome)
        return outcome

    # -- size strategy -----------------------------------------------------

    def _rotate_by_size(self, active_path: str, outcome: RotationOutcome) -> None:
        directory, base, ext = split_log_name(active_path)
        max_files = self._config.effective_max_files

        if max_files <= 1:
            # No numbered slot is kept; the active file goes straight to the archive.
            archived = self._archive_file(active_path, f"{base}.1{ext}", outcome.warnings)
            if archived:
                outcome.rotated = True
                outcome.rotated_path = archived
                outcome.archived.append(archived)
            outcome.deleted.extend(self.cleanup_archived_files(outcome.warnings))
            return

        for index in range(max_files - 1, 0, -1):
            older = os.path.join(directory, f"{base}.{index}{ext}")
            if not os.path.exists(older):
                continue
            if index == max_files - 1:
                archived = self._archive_file(older, f"{base}.{index}{ext}", outcome.warnings)
                if archived:
                    outcome.archived.append(archived)
            else:
                newer = os.path.join(directory, f"{base}.{index + 1}{ext}")
                self._shift(older, newer, outcome.warnings)

        first_slot = os.path.join(directory, f"{base}.1{ext}")
        if self._shift(active_path, first_slot, outcome.warnings):
            outcome.rotated = True
            outcome.rotated_path = first_slot

        outcome.deleted.extend(self.cleanup_archived_files(outcome.warnings))

    def _shift(self, source: str, target: str, warnings: list[str]) -> bool:
        """Rename source to target unless target is still occupied."""
        if os.path.exists(target):
            self._warn(warnings, "Not rotating %s: %s is still occupied", source, target)
            return False
        try:
            os.replace(source, target)
        except OSError as exc:
            self._warn(warnings, "Failed to rename %s to %s: %s", source, target, exc)
            return False
        return True

    # -- date strategy -----------------------------------------------------

    def _rotate_by_date(self, active_path: str, state: ActiveFileState, outcome: RotationOutcome) -> None:
        directory, base, ext = split_log_name(active_path)
        bucket = state.current_bucket or format_bucket(self._time_func(), self._config.date_bucket)

        archived = self._archive_file(
            active_path, self.resolve_date_archive_name(base, ext, bucket), outcome.warnings
        )
        if archived:
            outcome.rotated = True
            outcome.rotated_path = archived
            outcome.archived.append(archived)

        state.current_bucket = format_bucket(self._time_func(), self._config.date_bucket)

        outcome.deleted.extend(self.cleanup_archived_files(outcome.warnings))
        if self._config.max_files is not None:
            outcome.deleted.extend(
                self.cleanup_old_date_files(directory, base, ext, outcome.warnings)
            )

    def resolve_date_archive_name(self, base: str, ext: str, bucket: str) -> str:
        """First free archive name for bucket: base.bucket.ext, then base.bucket.1.ext, ..."""
        candidate = f"{base}.{bucket}{ext}"
        counter = 1
        while self._archive_name_taken(candidate):
            candidate = f"{base}.{bucket}.{counter}{ext}"
            counter += 1
        return candidate

    def _archive_name_taken(self, name: str) -> bool:
        path = os.path.join(self._archive_dir, name)
        return os.path.exists(path) or os.path.exists(path + ".gz")

    def cleanup_old_date_files(
        self, directory: str, base: str, ext: str, warnings: list[str] | None = None
    ) -> list[str]:
        """Bound date-suffixed files left in the active directory to max_files, newest kept."""
        pattern = date_file_pattern(base, ext)
        try:
            entries = []
            for name in os.listdir(directory):
                if pattern.match(name):
                    path = os.path.join(directory, name)
                    entries.append((os.path.getmtime(path), path))
        except OSError as exc:
            self._warn(warnings, "Failed to clean up old date-based log files in %s: %s", directory, exc)
            return []

        entries.sort(reverse=True)
        deleted = []
        for _, path in entries[self._config.effective_max_files:]:
            try:
                os.remove(path)
            except OSError as exc:
                self._warn(warnings, "Failed to delete old log file %s: %s", path, exc)
                continue
            deleted.append(path)
        return deleted

    # -- archiving and retention -------------------------------------------

    def _archive_file(self, source: str, archive_name: str, warnings: list[str]) -> str | None:
        """Move source into the archive directory, gzip-compressed when enabled.

        Returns the final archive path, or None if the file could not be moved.
        """
        if not os.path.exists(source):
            return None
        archive_path = os.path.join(self._archive_dir, archive_name)

        if self._config.compress:
            gz_path = archive_path + ".gz"
            try:
                return compress_file(source, gz_path)
            except OSError as exc:
                self._warn(warnings, "Failed to compress %s, archiving uncompressed: %s", source, exc)
                self._discard(gz_path, warnings)

        try:
            shutil.move(source, archive_path)
        except OSError as exc:
            self._warn(warnings, "Failed to archive file %s: %s", source, exc)
            return None
        return archive_path

    def _discard(self, path: str, warnings: list[str]) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            self._warn(warnings, "Failed to remove partial archive %s: %s", path, exc)

    def cleanup_archived_files(self, warnings: list[str] | None = None) -> list[str]:
        """Delete archived files whose modification time is older than retention_days."""
        if self._config.retention_days == 0:
            return []

        cutoff = (self._time_func() - timedelta(days=self._config.retention_days)).timestamp()
        try:
            names = sorted(os.listdir(self._archive_dir))
        except OSError as exc:
            self._warn(warnings, "Failed to clean up archived files in %s: %s", self._archive_dir, exc)
            return []

        deleted = []
        for name in names:
            path = os.path.join(self._archive_dir, name)
            try:
                if not os.path.isfile(path) or os.path.getmtime(path) >= cutoff:
                    continue
                os.remove(path)
            except OSError as exc:
                self._warn(warnings, "Failed to delete expired archive file %s: %s", name, exc)
                continue
            deleted.append(path)
        return deleted
