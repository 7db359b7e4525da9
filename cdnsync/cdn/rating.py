"""
Converts probe measurements into a host quality score between 0 and 255.

Zero is reserved for unreachable hosts; the latency curve never goes below 1.
"""

import logging
from collections.abc import Mapping

log = logging.getLogger(__name__)

UNREACHABLE = 0
UNRATED = 255
MIN_SCORE = 1
MAX_SCORE = 255

# edge network -> {origin ASN: multiplier}
PenaltyTable = Mapping[str, Mapping[int, float]]

DEFAULT_PENALTIES: PenaltyTable = {
    "cloudflare": {
        3320: 0.1,  # DTAG, poor Cloudflare peering
        5483: 0.1,  # Magyar Telekom, DTAG subsidiary
    },
}


def rate_latency(latency: float) -> int:
    """
    Scores a round-trip latency given in seconds.

    The curve is non-increasing in latency: flat at 240 up to 50 ms, then three
    linear segments down to 140 at 500 ms, and 100 beyond that.
    """
    # whole milliseconds; rounding first absorbs float error in the conversion
    ms = float(int(round(latency * 1000, 3)))

    if ms <= 50:
        rating = 240.0
    elif ms <= 100:
        rating = 240.0 - (ms - 50) * 1.0
    elif ms <= 200:
        rating = 190.0 - (ms - 100) * 0.5
    elif ms <= 500:
        rating = 140.0 - (ms - 200) * 0.033
    else:
        rating = 100.0

    return int(min(max(rating, MIN_SCORE), MAX_SCORE))


def calculate_rating(
    latency: float | None,
    edge_network: str | None,
    asn: int,
    penalties: PenaltyTable = DEFAULT_PENALTIES,
) -> int:
    """
    Computes the full host score.

    Args:
        latency: Measured round trip in seconds, or None if the probe failed.
        edge_network: Name of the acceleration network fronting the host, if any.
        asn: Autonomous system number of the client's network (0 if unknown).
        penalties: Multipliers applied for edge network / ASN pairs with known
            bad routing.

    Returns:
        0 for an unreachable host, otherwise a score in [1, 255] before penalties.
    """
    if latency is None:
        return UNREACHABLE

    rating = rate_latency(latency)

    if edge_network:
        factor = penalties.get(edge_network, {}).get(asn)
        if factor is not None:
            log.debug(
                f"Applying {edge_network} penalty x{factor} for AS{asn} "
                f"(score {rating} -> {int(rating * factor)})"
            )
            rating = int(rating * factor)

    return rating
