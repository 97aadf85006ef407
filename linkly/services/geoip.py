"""IP geolocation: the ip-api.com client and the process-wide lookup cache."""

import asyncio
import ipaddress
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx
import structlog

from linkly.core.observability import record_geo_lookup

logger = structlog.get_logger()

GEO_FIELDS = "status,country,regionName,city"

GeoFetcher = Callable[[str], Awaitable["GeoLocation | None"]]


@dataclass(frozen=True, slots=True)
class GeoLocation:
    """Geographic location data from IP lookup."""

    country: str | None = None
    region: str | None = None
    city: str | None = None


def normalize_ip(value: str | None) -> str | None:
    """Parse ``value`` as an IP address.

    IPv4-mapped IPv6 addresses (``::ffff:1.2.3.4``) are unwrapped to IPv4.

    Returns:
        The canonical string form, or None if ``value`` is not an address.
    """
    if not value:
        return None
    try:
        ip = ipaddress.ip_address(value.strip())
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        ip = ip.ipv4_mapped
    return str(ip)


def is_public_ip(value: str) -> bool:
    """Whether ``value`` is a globally routable address worth geolocating."""
    normalized = normalize_ip(value)
    if normalized is None:
        return False
    ip = ipaddress.ip_address(normalized)
    return not (
        ip.is_private
        or ip.is_loopback
        or ip.is_link_local
        or ip.is_unspecified
        or ip.is_reserved
        or ip.is_multicast
    )


class IpApiGeoService:
    """Client for the ip-api.com JSON endpoint.

    Usage:
        service = IpApiGeoService("http://ip-api.com/json", timeout=3.0)
        location = await service.fetch("8.8.8.8")
        await service.aclose()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 3.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def fetch(self, ip: str) -> GeoLocation | None:
        """Look up ``ip``.

        Returns:
            The location, or None when the service has nothing for it.

        Raises:
            httpx.HTTPError: Transport failure or non-2xx response.
            ValueError: The body is not the expected JSON.
        """
        response = await self._client.get(
            f"{self._base_url}/{ip}",
            params={"fields": GEO_FIELDS},
        )
        response.raise_for_status()
        data = response.json()
        if not isinstance(data, dict) or data.get("status") != "success":
            return None

        location = GeoLocation(
            country=data.get("country") or None,
            region=data.get("regionName") or None,
            city=data.get("city") or None,
        )
        if location == GeoLocation():
            return None
        return location

    async def aclose(self) -> None:
        await self._client.aclose()


@dataclass(slots=True)
class _Unavailable:
    retry_at: float


class GeoLookupCache:
    """Memoizing, deduplicating front for a geolocation fetcher.

    Successful results are kept for the life of the process. Failures
    (exceptions, timeouts, empty answers) are remembered for
    ``failure_ttl`` seconds and retried on the next lookup after that.
    Concurrent lookups of one address share a single fetch.

    Args:
        fetcher: Coroutine function returning a location or None.
        timeout: Hard limit on a single fetch, in seconds.
        failure_ttl: Seconds to remember a failed lookup.
        clock: Monotonic time source; replaced in tests.
    """

    def __init__(
        self,
        fetcher: GeoFetcher,
        timeout: float = 3.0,
        failure_ttl: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._timeout = timeout
        self._failure_ttl = failure_ttl
        self._clock = clock
        self._results: dict[str, GeoLocation | _Unavailable] = {}
        self._inflight: dict[str, asyncio.Future[GeoLocation | None]] = {}

    def __len__(self) -> int:
        return len(self._results)

    async def lookup(self, ip: str | None) -> GeoLocation | None:
        """Return the location of ``ip``, or None if unknown or private."""
        normalized = normalize_ip(ip)
        if normalized is None or not is_public_ip(normalized):
            record_geo_lookup("private")
            return None

        cached = self._results.get(normalized)
        if isinstance(cached, GeoLocation):
            record_geo_lookup("hit")
            return cached
        if isinstance(cached, _Unavailable) and self._clock() < cached.retry_at:
            record_geo_lookup("hit")
            return None

        pending = self._inflight.get(normalized)
        if pending is not None:
            record_geo_lookup("coalesced")
            # Shield so one cancelled waiter does not cancel the shared fetch
            return await asyncio.shield(pending)

        future: asyncio.Future[GeoLocation | None] = asyncio.get_running_loop().create_future()
        self._inflight[normalized] = future
        try:
            result = await self._fetch(normalized)
            future.set_result(result)
            return result
        except asyncio.CancelledError:
            future.cancel()
            raise
        finally:
            del self._inflight[normalized]

    async def _fetch(self, ip: str) -> GeoLocation | None:
        record_geo_lookup("miss")
        try:
            result = await asyncio.wait_for(self._fetcher(ip), timeout=self._timeout)
        except asyncio.TimeoutError:
            logger.debug("Geo lookup timed out", ip=ip, timeout=self._timeout)
            result = None
        except Exception as e:
            logger.debug("Geo lookup failed", ip=ip, error=str(e))
            result = None

        if result is None:
            record_geo_lookup("failure")
            self._results[ip] = _Unavailable(retry_at=self._clock() + self._failure_ttl)
        else:
            self._results[ip] = result
        return result
