"""Fixed-point scale and protocol defaults."""
from __future__ import annotations

# One unit ("1.0") in every ratio field.
SCALE = 10**18
ONE = SCALE

MAX_UINT256 = 2**256 - 1

SECONDS_PER_YEAR = 365 * 24 * 60 * 60

# Health factor below which a position may be liquidated.
MIN_HEALTH_FACTOR = ONE

DEFAULT_MAX_STALENESS = 3600  # seconds
DEFAULT_RESERVE_FACTOR = 100_000_000_000_000_000  # 10%
DEFAULT_CLOSE_FACTOR = 500_000_000_000_000_000  # 50%
DEFAULT_LIQUIDATION_THRESHOLD = ONE
