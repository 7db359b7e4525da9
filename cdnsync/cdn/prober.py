"""
Timed HTTP probes against candidate CDN hosts.
"""

import asyncio
import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass

import aiohttp

from cdnsync.exceptions import UnreachableHostError

log = logging.getLogger(__name__)

INITIAL_PROBE_TIMEOUT = 1.0
RETRY_PROBE_TIMEOUT = 5.0

# edge network -> header name -> expected value substring ("" matches any value)
EDGE_FINGERPRINTS: Mapping[str, Mapping[str, str]] = {
    "cloudflare": {"cf-ray": "", "server": "cloudflare"},
}


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of a successful probe."""

    latency: float
    edge_network: str | None = None

    @property
    def is_edge_network(self) -> bool:
        return self.edge_network is not None


def probe_timeout(is_initial: bool) -> float:
    """Short timeout for the first pass of a run, a patient one afterwards."""
    return INITIAL_PROBE_TIMEOUT if is_initial else RETRY_PROBE_TIMEOUT


def detect_edge_network(
    headers: Mapping[str, str],
    fingerprints: Mapping[str, Mapping[str, str]] = EDGE_FINGERPRINTS,
) -> str | None:
    """Returns the name of the first edge network whose fingerprint matches."""
    lowered = {k.lower(): v.lower() for k, v in headers.items()}
    for network, markers in fingerprints.items():
        for header, expected in markers.items():
            value = lowered.get(header.lower())
            if value is not None and expected.lower() in value:
                return network
    return None


async def probe(
    session: aiohttp.ClientSession, url: str, timeout: float
) -> ProbeResult:
    """
    Issues a single GET to a host root and measures the time to response headers.

    Any HTTP status counts as reachable; only the round trip matters.

    Raises:
        UnreachableHostError: On timeout or connection failure.
    """
    start = time.monotonic()
    try:
        async with session.get(
            url,
            timeout=aiohttp.ClientTimeout(total=timeout),
            allow_redirects=False,
        ) as response:
            latency = time.monotonic() - start
            edge_network = detect_edge_network(response.headers)
    except asyncio.TimeoutError as e:
        raise UnreachableHostError(f"Timed out after {timeout:.1f}s: {url}") from e
    except aiohttp.ClientError as e:
        raise UnreachableHostError(f"Connection to {url} failed: {e}") from e

    log.debug(
        f"Probe {url}: {int(latency * 1000)}ms, status {response.status}, "
        f"edge network: {edge_network or 'none'}"
    )
    return ProbeResult(latency=latency, edge_network=edge_network)
