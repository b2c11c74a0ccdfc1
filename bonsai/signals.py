"""Turn raw chain numbers into bounded visual intensities."""

import math

from bonsai.constants import SIGNAL_LOG_SCALE, WEI_PER_ETH


def clamp(n, lo, hi):
    return max(lo, min(hi, n))


def wei_to_eth(wei):
    try:
        eth = int(wei) / WEI_PER_ETH
    except OverflowError:
        return 0.0
    if not math.isfinite(eth):
        return 0.0
    return eth


def _log_intensity(x):
    # NaN compares false against everything, so test finiteness first.
    if not math.isfinite(x) or x <= 0:
        return 0.0
    y = math.log10(1 + x) / SIGNAL_LOG_SCALE
    if not math.isfinite(y):
        return 0.0
    return clamp(y, 0.0, 1.0)


def richness(balance_wei):
    """Trunk thickness signal: log-compressed ETH balance, in [0, 1]."""
    return _log_intensity(wei_to_eth(balance_wei))


def activity(tx_count):
    """Leafiness signal: log-compressed transaction count, in [0, 1]."""
    try:
        n = float(tx_count)
    except (OverflowError, TypeError, ValueError):
        return 0.0
    return _log_intensity(n)
