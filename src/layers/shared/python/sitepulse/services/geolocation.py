"""IP geolocation through an ordered chain of external providers.

Providers are tried one after another. Each call is bounded by a timeout,
and any failure falls through to the next provider. When every provider
fails the result is ``None``: enrichment is best effort and must never
block or fail the write it decorates.
"""

import ipaddress
import json
import math
import os
import re
import time
from typing import Any, Protocol, Sequence
from urllib.parse import quote

import httpx
import structlog

from sitepulse.models.activity_log import GeoRecord
from sitepulse.utils.exceptions import UpstreamProviderError

logger = structlog.get_logger()

GEO_TIMEOUT_SECONDS = 3.5
USER_AGENT = "sitepulse/1.0"

_ASN_PATTERN = re.compile(r"^AS\d+$", re.IGNORECASE)


class GeoProvider(Protocol):
    """A geolocation backend."""

    name: str

    def try_resolve(self, ip: str, timeout: float) -> GeoRecord:
        """Resolve ``ip`` or raise UpstreamProviderError."""
        ...


def is_geolocatable(ip: str | None) -> bool:
    """Whether an address is worth sending to a provider.

    Empty strings, non-IP values, and loopback, link-local, private or
    otherwise non-global addresses are rejected.
    """
    if not ip:
        return False
    try:
        address = ipaddress.ip_address(ip.strip())
    except ValueError:
        return False

    mapped = getattr(address, "ipv4_mapped", None)
    if mapped is not None:
        address = mapped

    if address.is_loopback or address.is_link_local or address.is_unspecified:
        return False
    return address.is_global


def _pick_text(data: dict[str, Any], *keys: str) -> str | None:
    """First non-empty value among ``keys``.

    Falls back to an empty string if a key is present but empty, and to
    None when no key is present at all.
    """
    present = [data[key] for key in keys if data.get(key) is not None]
    for value in present:
        if value != "":
            return str(value)
    return str(present[0]) if present else None


def _to_float(value: Any) -> float | None:
    """Parse a coordinate; None when missing or not a finite number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def parse_lat_lon(loc: Any) -> tuple[float | None, float | None]:
    """Split a combined ``"lat,lon"`` string into two floats.

    Anything that is not exactly two parseable numbers yields (None, None).
    """
    if not isinstance(loc, str):
        return None, None
    parts = loc.split(",")
    if len(parts) != 2:
        return None, None
    latitude, longitude = _to_float(parts[0].strip()), _to_float(parts[1].strip())
    if latitude is None or longitude is None:
        return None, None
    return latitude, longitude


def extract_asn(org: Any) -> str | None:
    """Extract the ASN token from an ``"AS123 Org Name"`` string."""
    if not isinstance(org, str) or not org.strip():
        return None
    token = org.split(None, 1)[0]
    if _ASN_PATTERN.match(token):
        return token.upper()
    return None


def _fetch_json(
    provider: str,
    url: str,
    timeout: float,
    params: dict[str, str] | None = None,
    transport: httpx.BaseTransport | None = None,
) -> dict[str, Any]:
    """GET a provider URL and decode its JSON object body.

    ``timeout`` bounds the whole call, not just each connect or read: the
    body is streamed and abandoned once the deadline has passed, so a
    provider trickling bytes cannot hold the request open.

    Raises:
        UpstreamProviderError: On timeout, transport error, non-2xx status
            or a body that is not a JSON object.
    """
    deadline = time.monotonic() + timeout
    body = bytearray()
    try:
        with httpx.Client(timeout=timeout, transport=transport) as client:
            with client.stream(
                "GET",
                url,
                params=params,
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
            ) as response:
                if not response.is_success:
                    raise UpstreamProviderError(
                        provider, f"{provider} returned {response.status_code}"
                    )
                for chunk in response.iter_bytes():
                    if time.monotonic() > deadline:
                        raise UpstreamProviderError(
                            provider, f"{provider} exceeded the {timeout}s deadline"
                        )
                    body.extend(chunk)
    except httpx.TimeoutException as e:
        raise UpstreamProviderError(provider, f"{provider} timed out", str(e)) from e
    except httpx.HTTPError as e:
        raise UpstreamProviderError(provider, f"{provider} request failed", str(e)) from e

    if time.monotonic() > deadline:
        raise UpstreamProviderError(provider, f"{provider} exceeded the {timeout}s deadline")

    try:
        data = json.loads(body)
    except ValueError as e:
        raise UpstreamProviderError(provider, f"{provider} returned invalid JSON", str(e)) from e

    if not isinstance(data, dict):
        raise UpstreamProviderError(provider, f"{provider} returned unexpected payload")
    return data


class IpinfoProvider:
    """ipinfo.io, credentialed (better accuracy and limits)."""

    name = "ipinfo"
    base_url = "https://ipinfo.io"

    def __init__(self, token: str, transport: httpx.BaseTransport | None = None):
        self.token = token
        self.transport = transport

    def try_resolve(self, ip: str, timeout: float) -> GeoRecord:
        data = _fetch_json(
            self.name,
            f"{self.base_url}/{quote(ip, safe='')}",
            timeout,
            params={"token": self.token},
            transport=self.transport,
        )
        if data.get("bogon"):
            raise UpstreamProviderError(self.name, "ipinfo reported a bogon address")

        latitude, longitude = parse_lat_lon(data.get("loc"))
        org = _pick_text(data, "org")
        return GeoRecord(
            ip=_pick_text(data, "ip") or ip,
            city=_pick_text(data, "city"),
            region=_pick_text(data, "region"),
            country=_pick_text(data, "country"),
            latitude=latitude,
            longitude=longitude,
            asn=extract_asn(org),
            org=org,
            timezone=_pick_text(data, "timezone"),
        )


class IpapiProvider:
    """ipapi.co, keyless fallback with lower rate limits."""

    name = "ipapi"
    base_url = "https://ipapi.co"

    def __init__(self, transport: httpx.BaseTransport | None = None):
        self.transport = transport

    def try_resolve(self, ip: str, timeout: float) -> GeoRecord:
        data = _fetch_json(
            self.name,
            f"{self.base_url}/{quote(ip, safe='')}/json/",
            timeout,
            transport=self.transport,
        )
        # ipapi.co answers 200 with {"error": true, "reason": ...} for
        # reserved ranges and rate limiting
        if data.get("error"):
            raise UpstreamProviderError(
                self.name,
                f"ipapi reported an error: {data.get('reason') or 'unknown'}",
            )

        return GeoRecord(
            ip=_pick_text(data, "ip") or ip,
            city=_pick_text(data, "city"),
            region=_pick_text(data, "region", "region_code"),
            country=_pick_text(data, "country_name", "country"),
            latitude=_to_float(data.get("latitude")),
            longitude=_to_float(data.get("longitude")),
            asn=_pick_text(data, "asn"),
            org=_pick_text(data, "org", "org_name"),
            timezone=_pick_text(data, "timezone"),
        )


class GeoLocationResolver:
    """Resolve IPs to GeoRecords through an ordered provider chain."""

    def __init__(
        self,
        providers: Sequence[GeoProvider],
        timeout: float = GEO_TIMEOUT_SECONDS,
    ):
        self.providers = list(providers)
        self.timeout = timeout

    @classmethod
    def from_environment(
        cls, transport: httpx.BaseTransport | None = None
    ) -> "GeoLocationResolver":
        """Build the default chain from environment configuration.

        ipinfo is used first only when IPINFO_TOKEN is set; ipapi.co is
        always the last resort. GEO_TIMEOUT_SECONDS overrides the
        per-provider timeout.
        """
        providers: list[GeoProvider] = []
        token = os.environ.get("IPINFO_TOKEN", "").strip()
        if token:
            providers.append(IpinfoProvider(token, transport=transport))
        providers.append(IpapiProvider(transport=transport))

        try:
            timeout = float(os.environ.get("GEO_TIMEOUT_SECONDS", GEO_TIMEOUT_SECONDS))
        except ValueError:
            timeout = GEO_TIMEOUT_SECONDS
        if not math.isfinite(timeout) or timeout <= 0:
            timeout = GEO_TIMEOUT_SECONDS

        return cls(providers, timeout=timeout)

    def resolve(self, ip: str | None) -> GeoRecord | None:
        """Resolve an IP, or None if it is not routable or every provider fails.

        Never raises.
        """
        if not is_geolocatable(ip):
            logger.debug("Skipping geolocation for non-public address", ip=ip)
            return None

        ip = ip.strip()
        for provider in self.providers:
            try:
                record = provider.try_resolve(ip, self.timeout)
            except UpstreamProviderError as e:
                logger.warning(
                    "Geolocation provider failed",
                    provider=provider.name,
                    ip=ip,
                    error=e.message,
                    original_error=e.original_error,
                )
                continue
            except Exception as e:
                # resolve() never raises
                logger.exception(
                    "Geolocation provider raised unexpectedly",
                    provider=provider.name,
                    ip=ip,
                    error=str(e),
                )
                continue

            logger.info(
                "Geolocation resolved",
                provider=provider.name,
                ip=ip,
                city=record.city,
                country=record.country,
            )
            return record

        logger.info("Geolocation unavailable, all providers failed", ip=ip)
        return None


def geolocation_enabled() -> bool:
    """Whether geo enrichment is switched on (GEO_LOOKUP_ENABLED)."""
    value = os.environ.get("GEO_LOOKUP_ENABLED", "true").strip().lower()
    return value not in ("0", "false", "no", "off")
