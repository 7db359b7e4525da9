"""
Owns the candidate CDN hosts, rates them concurrently, and selects the best one.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from urllib.parse import urlsplit

import aiohttp

from cdnsync import __version__
from cdnsync.exceptions import NoHostAvailableError, UnreachableHostError
from cdnsync.utils.structured_logger import SyncEventLogger

from .prober import ProbeResult, probe, probe_timeout
from .rating import DEFAULT_PENALTIES, UNRATED, UNREACHABLE, PenaltyTable, calculate_rating

log = logging.getLogger(__name__)

DEFAULT_CDN_HOSTS = ("cdn.alterware.ovh", "us-cdn.alterware.ovh")
USER_AGENT = f"cdn-sync/{__version__}"

Prober = Callable[[aiohttp.ClientSession, str, float], Awaitable[ProbeResult]]


@dataclass
class CandidateHost:
    """A CDN origin and the outcome of its most recent rating."""

    address: str
    score: int = UNRATED
    latency: float | None = None
    edge_network: str | None = None
    use_https: bool = field(default=True, repr=False)

    @property
    def url(self) -> str:
        scheme = "https" if self.use_https else "http"
        return f"{scheme}://{self.address}/"

    @property
    def base_url(self) -> str:
        return self.url.rstrip("/")


@dataclass(frozen=True)
class ActiveHost:
    """Snapshot of the host every manifest and file request is sent to."""

    address: str
    base_url: str
    score: int = UNRATED
    latency: float | None = None

    @classmethod
    def from_candidate(cls, candidate: CandidateHost) -> "ActiveHost":
        return cls(
            address=candidate.address,
            base_url=candidate.base_url,
            score=candidate.score,
            latency=candidate.latency,
        )

    @classmethod
    def from_override(cls, url: str) -> "ActiveHost":
        """Builds an unrated host from an operator-supplied origin URL."""
        base_url = url.rstrip("/")
        return cls(address=urlsplit(base_url).netloc or base_url, base_url=base_url)

    def url_for(self, name: str, cache_buster: str | None = None) -> str:
        url = f"{self.base_url}/{name.lstrip('/')}"
        return f"{url}?{cache_buster}" if cache_buster else url


def _ranking_key(host: CandidateHost) -> tuple[int, int, float]:
    # Score first, then lower latency; an unmeasured host loses any tie.
    has_latency = host.latency is not None
    return (host.score, int(has_latency), -(host.latency or 0.0))


class HostSelector:
    """
    Rates a fixed pool of CDN hosts and tracks the currently selected one.

    Each rating pass probes every host concurrently and only selects once all
    probes have finished.
    """

    def __init__(
        self,
        hosts: Sequence[str] = DEFAULT_CDN_HOSTS,
        use_https: bool = True,
        penalties: PenaltyTable = DEFAULT_PENALTIES,
        prober: Prober = probe,
        events: SyncEventLogger | None = None,
    ):
        self.candidates: list[CandidateHost] = [
            CandidateHost(address=h, use_https=use_https) for h in hosts
        ]
        self.penalties = penalties
        self._prober = prober
        self._events = events
        self._active: ActiveHost | None = None
        self._lock = asyncio.Lock()

    @property
    def active(self) -> ActiveHost | None:
        return self._active

    def active_url(self) -> str | None:
        """Base URL of the selected host, or None before the first pass completes."""
        return self._active.base_url if self._active else None

    async def _rate_host(
        self,
        session: aiohttp.ClientSession,
        host: CandidateHost,
        asn: int,
        timeout: float,
    ) -> None:
        try:
            result = await self._prober(session, host.url, timeout)
        except UnreachableHostError as e:
            log.warning(f"Failed to connect to {host.address}: {e}")
            host.score = UNREACHABLE
            host.latency = None
            host.edge_network = None
            if self._events:
                self._events.host_unreachable(host.address, str(e))
            return

        host.latency = result.latency
        host.edge_network = result.edge_network
        host.score = calculate_rating(
            result.latency, result.edge_network, asn, self.penalties
        )
        log.info(
            f"Server {host.address} rated {host.score} "
            f"({int(result.latency * 1000)}ms, edge network: "
            f"{result.edge_network or 'none'})"
        )
        if self._events:
            self._events.host_rated(
                host.address,
                host.score,
                int(result.latency * 1000),
                result.edge_network,
            )

    async def rate_all(self, asn: int = 0, is_initial: bool = True) -> ActiveHost | None:
        """
        Probes and rates every candidate, then selects the best one.

        The active host is cleared for the duration of the pass.

        Args:
            asn: Autonomous system number of the client network.
            is_initial: Use the short first-pass timeout instead of the long one.

        Returns:
            The newly selected host, or None if there are no candidates.
        """
        async with self._lock:
            self._active = None
            timeout = probe_timeout(is_initial)
            log.debug(
                f"Rating {len(self.candidates)} CDN hosts with {timeout:.0f}s timeout"
            )
            async with aiohttp.ClientSession(
                headers={"User-Agent": USER_AGENT}
            ) as session:
                await asyncio.gather(
                    *(
                        self._rate_host(session, host, asn, timeout)
                        for host in self.candidates
                    )
                )
            return self.select_best()

    def select_best(self) -> ActiveHost | None:
        """
        Promotes the highest scoring host (ties go to the lower latency).

        Returns:
            The selected host, or None when the candidate set is empty.
        """
        if not self.candidates:
            return None

        best = max(self.candidates, key=_ranking_key)
        self._active = ActiveHost.from_candidate(best)
        if self._events:
            self._events.host_selected(self._active.base_url, best.score)
        return self._active

    def ranked(self) -> list[CandidateHost]:
        """All candidates, best first."""
        return sorted(self.candidates, key=_ranking_key, reverse=True)

    async def rate_and_select(self, asn: int = 0) -> ActiveHost:
        """
        Runs the quick initial pass and, if every host failed it, a patient second
        pass.

        Raises:
            NoHostAvailableError: If no host answered either pass.
        """
        active = await self.rate_all(asn, is_initial=True)
        if self.candidates and all(h.score == UNREACHABLE for h in self.candidates):
            log.info(
                "All CDN servers failed the initial probe, retrying with "
                "a longer timeout"
            )
            active = await self.rate_all(asn, is_initial=False)

        if active is None or active.score == UNREACHABLE:
            raise NoHostAvailableError(
                "No CDN host is reachable. Check your internet connection."
            )

        log.info(f"Using CDN host [cyan]{active.address}[/cyan] (score {active.score})")
        return active
