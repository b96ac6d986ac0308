"""Shared utilities: datetime and generators."""

from hse_portal.shared.utils.datetime import (
    ensure_utc,
    from_timestamp_ms_utc,
    parse_timestamp,
    utc_now,
)
from hse_portal.shared.utils.generators import generate_cuid

__all__ = [
    "generate_cuid",
    "utc_now",
    "ensure_utc",
    "from_timestamp_ms_utc",
    "parse_timestamp",
]
