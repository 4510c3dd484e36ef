from __future__ import annotations

import re

from loglift.errors import KeyDerivationError

# Hourly rotated log files end in a stamp such as "-2024-01-01-00".
_DATE_HOUR_SUFFIX = re.compile(r"(\d{4})-(\d{2})-(\d{2})-(\d{2})$")


def derive_cursor_key(file_name: str) -> str:
    match = _DATE_HOUR_SUFFIX.search(file_name)
    if match is None:
        raise KeyDerivationError(file_name)
    return match.group(0)
