"""Human-readable size strings ("10MB", "1.5G", "500") to byte counts."""

import re

from ctxlog.errors import InvalidSizeFormatError

SIZE_PATTERN = re.compile(r"^(\d+(?:\.\d+)?)\s*([KMGT]?B?)$", re.IGNORECASE)

# 1024-based; the trailing "B" is optional.
MULTIPLIERS = {
    "": 1,
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "M": 1024 ** 2,
    "MB": 1024 ** 2,
    "G": 1024 ** 3,
    "GB": 1024 ** 3,
    "T": 1024 ** 4,
    "TB": 1024 ** 4,
}


def parse_size(text: str) -> int:
    """Parse a size string into bytes, truncating fractional bytes toward zero."""
    if not isinstance(text, str):
        raise InvalidSizeFormatError(str(text))
    match = SIZE_PATTERN.match(text.strip())
    if not match:
        raise InvalidSizeFormatError(text)

    number_str, unit = match.groups()
    return int(float(number_str) * MULTIPLIERS[unit.upper()])
