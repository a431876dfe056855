"""Inference service client for the Study Assistant gateway.

This module handles all communication with the hosted model inference API:
response caching, bounded retries with backoff, and normalization of JSON
and audio responses.
"""

import asyncio
import base64
import hashlib
import json
from typing import Any, Dict, Optional

import httpx

from config import ApplicationConfig
from utils import TTLCache, create_contextual_logger
from utils.metrics import cache_hits, upstream_requests

from .exceptions import (
    ConfigurationError,
    MalformedInputError,
    TransientUpstreamError,
    UpstreamRejectionError,
)

AUDIO_PREFIX = "audio/"


def status_backoff_delay(attempt: int, base: float = 2.0, cap: float = 8.0) -> float:
    """Delay after a 429/5xx response on ``attempt`` (1-based): 2s, 4s, then capped."""
    return min(base * (2 ** (attempt - 1)), cap)


def transport_backoff_delay(attempt: int, step: float = 0.2) -> float:
    """Delay after a transport failure on ``attempt`` (1-based)."""
    return attempt * step


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


def cache_key(model_id: str, payload: Any, accept: Optional[str] = None) -> str:
    """Stable hash of the request identity."""
    serialized = json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False, default=str)
    material = "|".join(("POST", model_id, serialized, accept or ""))
    return hashlib.sha256(material.encode("utf-8")).hexdigest()


class InferenceClient:
    """Caching, retrying client for the inference API.

    One instance is created per process and shared by every request; the
    cache it owns deduplicates identical calls across callers.
    """

    def __init__(
        self,
        config: ApplicationConfig,
        cache: Optional[TTLCache] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        sleep=asyncio.sleep,
    ) -> None:
        self.config = config
        self.logger = create_contextual_logger(__name__, service="inference_client")
        self.cache = cache if cache is not None else TTLCache(config.cache_max_entries, config.cache_ttl_seconds)
        self._transport = transport
        self._sleep = sleep
        self._client: Optional[httpx.AsyncClient] = None

    async def start(self) -> None:
        """Create the underlying HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.inference_base_url,
                timeout=self.config.inference_timeout,
                transport=self._transport,
                headers={"User-Agent": f"StudyAssist-Gateway/{self.config.app_version}"},
            )

    async def stop(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    def _headers(self, accept: Optional[str]) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.config.hugging_face_api_key}",
            "Content-Type": "application/json",
        }
        if accept:
            headers["Accept"] = accept
        return headers

    def _normalize(self, response: httpx.Response, accept: Optional[str]) -> Any:
        if accept and accept.startswith(AUDIO_PREFIX):
            return {
                "base64": base64.b64encode(response.content).decode("ascii"),
                "contentType": response.headers.get("content-type") or accept,
            }
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamRejectionError(
                f"Inference response was not valid JSON (status {response.status_code})",
                status_code=response.status_code,
                body=response.text[:500],
            ) from e

    async def invoke(self, model_id: str, payload: Any, accept: Optional[str] = None) -> Any:
        """Call ``model_id`` with ``payload`` and return the normalized response.

        Raises:
            MalformedInputError: empty model id or missing payload.
            ConfigurationError: no API key configured.
            UpstreamRejectionError: non-retryable upstream response.
            TransientUpstreamError: retryable failures exhausted every attempt.
        """
        if not model_id or not model_id.strip():
            raise MalformedInputError("model_id is required")
        if payload is None:
            raise MalformedInputError("payload is required")

        key = cache_key(model_id, payload, accept)
        found, cached = self.cache.get(key)
        if found:
            cache_hits.labels(model=model_id).inc()
            self.logger.debug("Inference cache hit", model=model_id)
            return cached

        if not self.config.hugging_face_api_key:
            raise ConfigurationError("Missing HUGGING_FACE_API_KEY")

        await self.start()
        url = f"/models/{model_id}"
        headers = self._headers(accept)
        max_attempts = self.config.inference_max_attempts
        last_error: Optional[TransientUpstreamError] = None

        for attempt in range(1, max_attempts + 1):
            try:
                response = await self._client.post(url, json=payload, headers=headers)
            except httpx.TransportError as e:
                upstream_requests.labels(model=model_id, outcome="transport_error").inc()
                last_error = TransientUpstreamError(f"Inference request failed: {e}")
                last_error.__cause__ = e
                delay = transport_backoff_delay(attempt, self.config.inference_transport_backoff_step)
                self.logger.warning(
                    "Inference transport failure",
                    model=model_id,
                    attempt=attempt,
                    error=str(e),
                    retry_in_seconds=delay if attempt < max_attempts else None,
                )
                if attempt < max_attempts:
                    await self._sleep(delay)
                continue

            status = response.status_code
            if is_retryable_status(status):
                upstream_requests.labels(model=model_id, outcome="retryable_status").inc()
                last_error = TransientUpstreamError(
                    f"Inference service error {status}",
                    status_code=status,
                    body=response.text,
                )
                delay = status_backoff_delay(
                    attempt, self.config.inference_backoff_base, self.config.inference_backoff_cap
                )
                self.logger.warning(
                    "Inference service overloaded or failing",
                    model=model_id,
                    attempt=attempt,
                    status_code=status,
                    retry_in_seconds=delay if attempt < max_attempts else None,
                )
                if attempt < max_attempts:
                    await self._sleep(delay)
                continue

            if not response.is_success:
                upstream_requests.labels(model=model_id, outcome="rejected").inc()
                self.logger.error(
                    "Inference request rejected",
                    model=model_id,
                    status_code=status,
                )
                raise UpstreamRejectionError(
                    f"Inference error {status}: {response.text}",
                    status_code=status,
                    body=response.text,
                )

            upstream_requests.labels(model=model_id, outcome="success").inc()
            result = self._normalize(response, accept)
            self.cache.set(key, result)
            self.logger.info("Inference request succeeded", model=model_id, attempts=attempt)
            return result

        self.logger.error(
            "Inference request failed after retries",
            model=model_id,
            attempts=max_attempts,
            status_code=last_error.status_code if last_error else None,
        )
        raise last_error or TransientUpstreamError("Inference request failed")

    async def health_check(self) -> Dict[str, Any]:
        return {
            "status": "healthy" if self.config.hugging_face_api_key else "misconfigured",
            "credential_configured": bool(self.config.hugging_face_api_key),
            "cache_entries": len(self.cache),
            "cache_capacity": self.cache.max_entries,
        }
