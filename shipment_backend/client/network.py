"""
Server discovery and retrying requests for API clients.

An `EndpointResolver` walks an ordered list of candidate base URLs and keeps
the first one whose health check answers 200. `ShipmentApiClient` then sends
requests to that server, retrying transport failures and 5xx answers as
dictated by a `RetryPolicy`. `describe_error` turns the final failure into a
title and message for a user-facing alert.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple

import httpx

from shipment_backend.client.config import ClientSettings

logger = logging.getLogger(__name__)


class NetworkError(Exception):
    """No server could be reached, or every retry failed."""
    
    def __init__(self, message: str, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.last_error = last_error


@dataclass(frozen=True)
class RetryPolicy:
    """
    Bounded retry schedule.
    
    `max_attempts` counts the first try. The delay before retry n (1-based)
    is `delay * backoff_factor ** (n - 1)`, so a factor of 1.0 is a fixed delay.
    """
    max_attempts: int = 3
    delay: float = 2.0
    backoff_factor: float = 1.0
    
    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay < 0 or self.backoff_factor < 1:
            raise ValueError("delay must be >= 0 and backoff_factor >= 1")
    
    def delays(self) -> Iterator[float]:
        """Delays to wait before each retry after the first attempt."""
        for retry in range(self.max_attempts - 1):
            yield self.delay * self.backoff_factor ** retry
    
    @classmethod
    def from_settings(cls, settings: ClientSettings) -> "RetryPolicy":
        return cls(
            max_attempts=settings.max_retries,
            delay=settings.retry_delay,
            backoff_factor=settings.backoff_factor,
        )


class EndpointResolver:
    """Picks the first reachable server from an ordered candidate list."""
    
    def __init__(
        self,
        candidates: Sequence[str],
        health_path: str = "/health",
        probe_timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not candidates:
            raise ValueError("at least one candidate URL is required")
        self.candidates: List[str] = [url.rstrip("/") for url in candidates]
        self.health_path = health_path
        self.probe_timeout = probe_timeout
        self._transport = transport
    
    async def is_healthy(self, client: httpx.AsyncClient, base_url: str) -> bool:
        try:
            response = await client.get(f"{base_url}{self.health_path}", timeout=self.probe_timeout)
        except httpx.HTTPError as e:
            logger.info("Server not reachable at %s: %s", base_url, e)
            return False
        return response.status_code == 200
    
    async def resolve(self) -> str:
        """
        Return the first candidate answering its health check.
        
        Raises:
            NetworkError: when no candidate answers
        """
        async with httpx.AsyncClient(transport=self._transport) as client:
            for base_url in self.candidates:
                logger.debug("Testing connectivity to %s", base_url)
                if await self.is_healthy(client, base_url):
                    logger.info("Server is reachable at %s", base_url)
                    return base_url
        raise NetworkError(
            "Cannot connect to any server. Please check your network connection "
            "and ensure the server is running."
        )


class ShipmentApiClient:
    """
    Async client for the shipment API with server discovery and retries.
    
    Usage:
        async with ShipmentApiClient.from_settings(ClientSettings()) as api:
            response = await api.request("GET", "/shipment")
    """
    
    def __init__(
        self,
        resolver: EndpointResolver,
        policy: RetryPolicy = RetryPolicy(),
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep=asyncio.sleep,
    ):
        self.resolver = resolver
        self.policy = policy
        self.base_url: Optional[str] = None
        self._sleep = sleep
        self._client = httpx.AsyncClient(
            timeout=timeout,
            transport=transport,
            headers={"Accept": "application/json"},
        )
    
    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> "ShipmentApiClient":
        resolver = EndpointResolver(
            settings.server_urls,
            health_path=settings.health_path,
            probe_timeout=settings.probe_timeout,
            transport=transport,
        )
        return cls(
            resolver,
            policy=RetryPolicy.from_settings(settings),
            timeout=settings.request_timeout,
            transport=transport,
        )
    
    async def __aenter__(self) -> "ShipmentApiClient":
        return self
    
    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()
    
    async def aclose(self) -> None:
        await self._client.aclose()
    
    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send a request to the resolved server.
        
        4xx answers are returned to the caller as-is. Transport errors and
        5xx answers are retried; after the last attempt a NetworkError
        carrying the final error is raised. A transport error drops the
        current server, so the next attempt health-checks the candidates again and
        can fail over to another one.
        """
        delays = self.policy.delays()
        attempt = 0
        while True:
            attempt += 1
            try:
                if self.base_url is None:
                    self.base_url = await self.resolver.resolve()
                response = await self._client.request(method, f"{self.base_url}{path}", **kwargs)
                if response.status_code < 500:
                    return response
                response.raise_for_status()
            except (httpx.HTTPError, NetworkError) as e:
                logger.warning("Attempt %d/%d %s %s on %s failed: %s",
                               attempt, self.policy.max_attempts, method, path, self.base_url, e)
                if isinstance(e, httpx.TransportError):
                    self.base_url = None
                delay = next(delays, None)
                if delay is None:
                    raise NetworkError(f"{method} {path} failed after {attempt} attempts", e) from e
                await self._sleep(delay)


def describe_error(error: BaseException) -> Tuple[str, str]:
    """Map a request failure to an alert (title, message) pair."""
    if isinstance(error, NetworkError) and error.last_error is not None:
        error = error.last_error
    
    if isinstance(error, httpx.TimeoutException):
        return ("Connection Timeout",
                "The request timed out. Please check your internet connection and try again.")
    
    if isinstance(error, httpx.HTTPStatusError):
        response = error.response
        try:
            data = response.json()
        except ValueError:
            data = {}
        server_message = (data.get("message") or data.get("error")) if isinstance(data, dict) else None
        status_code = response.status_code
        
        if status_code == 400:
            return "Validation Error", server_message or "Invalid request data"
        if status_code == 401:
            return "Authentication Error", server_message or "Invalid credentials"
        if status_code == 403:
            return "Access Denied", server_message or "You do not have permission to perform this action"
        if status_code == 404:
            return "Not Found", server_message or "The requested resource was not found"
        if status_code == 429:
            return "Rate Limited", "Too many requests. Please wait a moment and try again."
        if status_code >= 500:
            return "Server Error", "Server is temporarily unavailable. Please try again later."
        return "Request Failed", server_message or f"Request failed with status {status_code}"
    
    if isinstance(error, (httpx.TransportError, NetworkError)):
        return ("Network Error",
                "Cannot connect to the server. Please check your network connection "
                "and ensure the server is running.")
    
    return "Error", "An unexpected error occurred"
