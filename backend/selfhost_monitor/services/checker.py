"""Checker service - performs the HTTP(S) probe for a monitored URL."""
import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

logger = logging.getLogger(__name__)


@dataclass
class ProbeOutcome:
    """Normalized result of a single probe."""
    up: bool
    latency_ms: int
    status_code: Optional[int] = None
    error: Optional[str] = None


class CheckerService:
    """Service for probing monitored URLs.

    A probe is a GET with a bounded total timeout, a fixed User-Agent and
    redirect following. Only a final 2xx response counts as up; every other
    outcome, including transport errors, is reported as down and never
    raised to the caller.
    """

    def __init__(
        self,
        timeout: float = 10.0,
        user_agent: str = "SelfHost-Monitor/1.0 (+uptime-check)",
        verify_tls: bool = True,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.verify_tls = verify_tls
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            follow_redirects=True,
            verify=self.verify_tls,
            headers={"User-Agent": self.user_agent},
            transport=self._transport,
        )

    async def probe(self, address: str) -> ProbeOutcome:
        """Probe an address and return the normalized outcome."""
        # Ensure URL has protocol
        if not address.startswith(("http://", "https://")):
            address = f"https://{address}"

        start = time.monotonic()
        try:
            async with self._client() as client:
                response = await client.get(address)
        except httpx.TimeoutException:
            return ProbeOutcome(up=False, latency_ms=self._since(start), error="Request timeout")
        except httpx.ConnectError as e:
            return ProbeOutcome(up=False, latency_ms=self._since(start), error=f"Connection error: {e}")
        except httpx.TooManyRedirects:
            return ProbeOutcome(up=False, latency_ms=self._since(start), error="Too many redirects")
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            return ProbeOutcome(up=False, latency_ms=self._since(start), error=f"{type(e).__name__}: {e}")
        except Exception as e:
            # Anything else (malformed address, TLS setup errors) is a failed probe too
            logger.debug(f"Unexpected probe error for {address}: {e}")
            return ProbeOutcome(up=False, latency_ms=self._since(start), error=str(e) or type(e).__name__)

        latency = self._since(start)
        status_code = response.status_code
        if 200 <= status_code < 300:
            return ProbeOutcome(up=True, latency_ms=latency, status_code=status_code)
        return ProbeOutcome(
            up=False,
            latency_ms=latency,
            status_code=status_code,
            error=f"HTTP {status_code}",
        )

    @staticmethod
    def _since(start: float) -> int:
        return int((time.monotonic() - start) * 1000)
