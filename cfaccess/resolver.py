from __future__ import annotations

import logging
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IpProvider:
    url: str
    json_field: str | None = None  # None -> plain text body


# Fixed fallback priority. JSON providers first, plain-text ones last.
DEFAULT_PROVIDERS: tuple[IpProvider, ...] = (
    IpProvider("https://api.ipify.org?format=json", "ip"),
    IpProvider("https://api.my-ip.io/ip.json", "ip"),
    IpProvider("https://ifconfig.me/all.json", "ip_addr"),
    IpProvider("https://ipinfo.io/json", "ip"),
    IpProvider("https://api.myip.com", "ip"),
    IpProvider("https://ifconfig.co/json", "ip"),
    IpProvider("https://ip.seeip.org/jsonip", "ip"),
    IpProvider("https://icanhazip.com"),
    IpProvider("https://ifconfig.me"),
    IpProvider("https://ipecho.net/plain"),
)


class ProviderError(Exception):
    """A single provider could not produce a usable address."""

    def __init__(self, url: str, detail: str):
        self.url = url
        self.detail = detail
        super().__init__(f"{url}: {detail}")


class ResolutionFailure(Exception):
    """Every provider in the chain failed."""

    def __init__(self, last_error: Exception | None):
        self.last_error = last_error
        super().__init__(f"all IP providers failed, last error: {last_error}")


@dataclass(frozen=True)
class ResolvedAddress:
    address: str
    provider: str
    failures: tuple[ProviderError, ...] = field(default=())


def _extract(data: Any, path: str) -> Any:
    cur = data
    for part in path.split("."):
        if not isinstance(cur, dict):
            return None
        cur = cur.get(part)
    return cur


class AddressResolver:
    """Discover the caller's public IP by walking a provider fallback chain."""

    def __init__(
        self,
        providers: tuple[IpProvider, ...] | list[IpProvider] = DEFAULT_PROVIDERS,
        timeout_s: float = 5.0,
        client: httpx.Client | None = None,
    ):
        self.providers = tuple(providers)
        self.timeout_s = timeout_s
        self._client = client

    def _session(self):
        if self._client is not None:
            return nullcontext(self._client)
        return httpx.Client(timeout=self.timeout_s, follow_redirects=True)

    def resolve(self) -> ResolvedAddress:
        """Return the first plausible address, or raise ResolutionFailure."""
        failures: list[ProviderError] = []
        with self._session() as client:
            for provider in self.providers:
                logger.info("Trying to get IP from: %s", provider.url)
                try:
                    address = self._query(client, provider)
                except ProviderError as e:
                    logger.warning("Failed to get IP from %s", e)
                    failures.append(e)
                    continue
                logger.info("Successfully obtained IP from %s", provider.url)
                return ResolvedAddress(address=address, provider=provider.url, failures=tuple(failures))

        raise ResolutionFailure(failures[-1] if failures else None)

    def _query(self, client: httpx.Client, provider: IpProvider) -> str:
        try:
            resp = client.get(provider.url, timeout=self.timeout_s)
        except httpx.HTTPError as e:
            raise ProviderError(provider.url, f"{type(e).__name__}: {e}") from e

        if resp.status_code != 200:
            raise ProviderError(provider.url, f"HTTP {resp.status_code}, body: {resp.text[:200]!r}")

        if provider.json_field:
            try:
                data = resp.json()
            except ValueError as e:
                raise ProviderError(provider.url, "invalid JSON") from e
            value = _extract(data, provider.json_field)
            if not isinstance(value, str) or not value.strip():
                raise ProviderError(provider.url, f"could not find '{provider.json_field}' in JSON response")
            return value.strip()

        ip = resp.text.strip()
        # Heuristic only: rejects HTML error pages and empty bodies.
        if not ip or "." not in ip:
            raise ProviderError(provider.url, f"received invalid IP: {ip[:100]!r}")
        return ip
