"""Async client for the upstream image-generation REST API.

The client is a thin wrapper around :class:`httpx.AsyncClient`.  It adds
bearer authentication, turns failure responses into
:class:`~imagerelay.core.errors.UpstreamServiceError` and checks that
success responses carry the fields the relay depends on.  It never retries:
a failed request is reported once and the caller decides what to do.

Endpoints
---------
========  ===============================  ==========================
Method    Path                             Used by
========  ===============================  ==========================
POST      ``/generations``                 :meth:`create_generation`
GET       ``/generations/{id}``            :meth:`get_generation`
GET       ``/generations/user/{user_id}``  :meth:`list_generations`
GET       ``/me``                          :meth:`get_user`
========  ===============================  ==========================

Usage
-----
::

    async with LeonardoClient.from_config(config) as client:
        job = await client.create_generation(payload)
        status = await client.wait_for_generation(job.generation_id)
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from .config import RelayConfig
from .errors import MalformedUpstreamResponse, UpstreamServiceError
from .sanitizer import is_terminal, sanitize_generations, summarize_status

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GenerationJob:
    """Accepted generation: upstream job id and optional credit cost."""

    generation_id: str
    credit_cost: float | int | None = None


def extract_credit_cost(data: dict[str, Any]) -> float | int | None:
    """Find the credit cost in a create-generation response.

    The service has reported it under several keys; the first present one
    wins.
    """
    job = data.get("sdGenerationJob") or {}
    for value in (job.get("apiCreditCost"), data.get("cost"), data.get("apiCreditCost"), job.get("cost")):
        if value is not None:
            return value
    return None


class LeonardoClient:
    """Client for the generation service.

    Args:
        api_key: Bearer token.
        base_url: REST API base URL.
        timeout: Per-request timeout in seconds.
        poll_interval: Default seconds between polls in
            :meth:`wait_for_generation`.
        transport: Optional httpx transport, used by tests to fake the
            service.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: float = 60.0,
        poll_interval: float = 0.5,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.poll_interval = poll_interval
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
        )

    @classmethod
    def from_config(
        cls, config: RelayConfig, transport: httpx.AsyncBaseTransport | None = None
    ) -> LeonardoClient:
        return cls(
            api_key=config.api_key.get_secret_value(),
            base_url=config.api_base_url,
            timeout=config.request_timeout,
            poll_interval=config.poll_interval,
            transport=transport,
        )

    async def __aenter__(self) -> LeonardoClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport helper
    # ------------------------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        fallback: str,
        **kwargs: Any,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            UpstreamServiceError: On a non-2xx status or a transport failure.
                The upstream body is attached unchanged.
        """
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {path} failed: {e}")
            raise UpstreamServiceError(502, None, fallback=str(e) or fallback) from e

        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            logger.error(f"Upstream error {response.status_code} for {method} {path}: {body}")
            raise UpstreamServiceError(response.status_code, body, fallback=fallback)

        return body

    # ------------------------------------------------------------------
    # Endpoints
    # ------------------------------------------------------------------

    async def create_generation(self, payload: dict[str, Any]) -> GenerationJob:
        """Submit a normalised payload.

        Raises:
            UpstreamServiceError: If the service rejects the request.
            MalformedUpstreamResponse: If no generation id is returned.
        """
        data = await self._request(
            "POST", "/generations", json=payload, fallback="Failed to generate image"
        )
        job = data.get("sdGenerationJob") if isinstance(data, dict) else None
        generation_id = job.get("generationId") if isinstance(job, dict) else None
        if not generation_id:
            raise MalformedUpstreamResponse("No generation ID received", data)

        cost = extract_credit_cost(data)
        logger.info(f"Generation {generation_id} accepted (credit cost: {cost})")
        return GenerationJob(generation_id=generation_id, credit_cost=cost)

    async def get_generation(self, generation_id: str) -> dict[str, Any]:
        """Fetch the raw upstream record for one generation.

        The record still contains the backend model id; use
        :meth:`get_status` for anything returned to a caller.

        Raises:
            MalformedUpstreamResponse: (404) if the service knows no such
                generation.
        """
        data = await self._request(
            "GET", f"/generations/{generation_id}", fallback="Failed to get generation status"
        )
        generation = data.get("generations_by_pk") if isinstance(data, dict) else None
        if not generation:
            raise MalformedUpstreamResponse("Generation not found", status_code=404)
        return generation

    async def get_status(self, generation_id: str) -> dict[str, Any]:
        """Caller-safe status summary for one generation."""
        return summarize_status(await self.get_generation(generation_id))

    async def list_generations(
        self, user_id: str, offset: int = 0, limit: int = 10
    ) -> list[dict[str, Any]]:
        """List a user's generations with backend ids stripped."""
        data = await self._request(
            "GET",
            f"/generations/user/{user_id}",
            params={"offset": offset, "limit": limit},
            fallback="Failed to get generations",
        )
        if not isinstance(data, dict):
            raise MalformedUpstreamResponse("Unexpected generations response", data)
        return sanitize_generations(data.get("generations") or [])

    async def get_user(self) -> dict[str, Any]:
        """Return the account details of the API key's owner."""
        data = await self._request("GET", "/me", fallback="Failed to get user info")
        details = data.get("user_details") if isinstance(data, dict) else None
        return details[0] if details else data

    async def wait_for_generation(
        self,
        generation_id: str,
        interval: float | None = None,
        timeout: float | None = None,
    ) -> dict[str, Any]:
        """Poll the status at a fixed interval until it is terminal.

        Args:
            generation_id: Generation to watch.
            interval: Seconds between polls; defaults to
                :attr:`poll_interval`.
            timeout: Give up after this many seconds; None waits forever.

        Returns:
            The last status summary (``COMPLETE`` or ``FAILED``).

        Raises:
            TimeoutError: If *timeout* elapses first.
            UpstreamServiceError: If any poll fails.  Not retried.
        """
        if interval is None:
            interval = self.poll_interval
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            status = await self.get_status(generation_id)
            logger.debug(f"Generation {generation_id} status: {status['status']}")
            if is_terminal(status["status"]):
                return status
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(
                    f"Generation {generation_id} still {status['status']} after {timeout}s"
                )
            await asyncio.sleep(interval)
