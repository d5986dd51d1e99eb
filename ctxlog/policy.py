"""Rotation decision: pure function of file facts and the configured trigger."""

from ctxlog.config import RotationConfig, RotationMethod


def needs_rotation(
    active_file_exists: bool,
    current_size: int,
    pending_bytes: int,
    last_bucket: str | None,
    now_bucket: str | None,
    config: RotationConfig,
) -> bool:
    """Decide whether the active file must rotate before the pending entry is appended.

    Only the field selected by config.method is consulted: sizes are ignored
    under DATE rotation and buckets under SIZE rotation.
    """
    if not active_file_exists:
        return False
    if config.method is RotationMethod.SIZE:
        return current_size + pending_bytes > config.max_size_bytes
    if config.method is RotationMethod.DATE:
        return now_bucket != last_bucket
    return False
