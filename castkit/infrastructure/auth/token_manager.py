"""Bearer token lifecycle for the Warpcast API.

Tokens are obtained by signing a canonical ``generateToken`` request with the
custody key and exchanging the resulting custody credential at ``/v2/auth``.
A token is reused until it nears expiry; concurrent callers that find no
usable token share one in-flight refresh instead of each signing.

All times are milliseconds since the Unix epoch.
"""

from __future__ import annotations

import asyncio
import base64
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional

import httpx

from castkit.domain.events.api_events import (
    EventSink, TokenRefreshFailed, TokenRefreshStarted, TokenRefreshSucceeded, dispatch_event,
)
from castkit.domain.interfaces.signer import Signer
from castkit.domain.models.common import BearerToken, CustodyCredential, EpochMillis
from castkit.domain.models.errors import AuthError
from castkit.infrastructure.api.http_errors import error_message, response_details

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.warpcast.com"
AUTH_PATH = "/v2/auth"

REFRESH_BUFFER_MS = 30 * 60 * 1000          # Refresh this long before expiry
TOKEN_VALIDITY_MS = 8 * 60 * 60 * 1000      # Assumed lifetime of a fresh token
MAX_TOKEN_HORIZON_MS = 24 * 60 * 60 * 1000  # Expiries further out are treated as corrupt


def now_ms() -> EpochMillis:
    return EpochMillis(int(time.time() * 1000))


def canonical_json(payload: Any) -> str:
    """Serializes with recursively sorted keys and no whitespace.

    The signed text and the request body must be byte-identical.
    """
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def custody_credential(signature: bytes) -> CustodyCredential:
    return CustodyCredential("eip191:" + base64.b64encode(signature).decode("ascii"))


def _redact(value: str, visible: int = 6) -> str:
    """Mask all but the first *visible* characters."""
    if len(value) <= visible:
        return "****"
    return value[:visible] + "****"


@dataclass(frozen=True)
class CachedToken:
    token: BearerToken
    expires_at: EpochMillis


class TokenManager:
    """Caches the bearer token and coordinates single-flight refreshes.

    Parameters
    ----------
    signer:
        Holder of the custody key.
    http_client:
        Client used for the token exchange. It must not carry the
        auth-injecting request hook of the API client.
    base_url:
        API root the ``/v2/auth`` path is appended to.
    """

    def __init__(
        self,
        signer: Signer,
        http_client: httpx.AsyncClient,
        base_url: str = DEFAULT_BASE_URL,
        *,
        refresh_buffer_ms: int = REFRESH_BUFFER_MS,
        token_validity_ms: int = TOKEN_VALIDITY_MS,
        clock: Callable[[], int] = now_ms,
        event_sink: Optional[EventSink] = None,
    ) -> None:
        self._signer = signer
        self._http = http_client
        self._auth_url = base_url.rstrip("/") + AUTH_PATH
        self.refresh_buffer_ms = refresh_buffer_ms
        self.token_validity_ms = token_validity_ms
        self._clock = clock
        self._event_sink = event_sink
        self._cached: Optional[CachedToken] = None
        self._refresh_task: Optional[asyncio.Task] = None
        self._lock = asyncio.Lock()

    @property
    def cached_token(self) -> Optional[CachedToken]:
        return self._cached

    @property
    def refreshing(self) -> bool:
        """``True`` while a token generation is in flight."""
        return self._refresh_task is not None

    def store(self, token: str, expires_at: int) -> None:
        """Caches *token* until *expires_at* (ms since epoch)."""
        self._cached = CachedToken(BearerToken(token), EpochMillis(expires_at))

    def invalidate(self) -> None:
        """Drops the cached token; the next call refreshes."""
        self._cached = None
        logger.info("Cached auth token invalidated.")

    def _is_usable(self, cached: Optional[CachedToken], now: int) -> bool:
        return (
            cached is not None
            and cached.expires_at > now
            and cached.expires_at < now + MAX_TOKEN_HORIZON_MS
            and cached.expires_at > now + self.refresh_buffer_ms
        )

    async def get_valid_token(self) -> str:
        """Returns a usable bearer token, refreshing it if needed.

        Raises:
            AuthError: If signing or the token exchange fails. Every caller
                waiting on the same refresh receives the error.
        """
        cached = self._cached
        now = self._clock()
        if self._is_usable(cached, now):
            logger.debug(f"Using cached token (expires in {(cached.expires_at - now) // 1000}s)")
            return cached.token

        async with self._lock:
            # Double-check after acquiring lock
            cached = self._cached
            if self._is_usable(cached, self._clock()):
                return cached.token
            if self._refresh_task is None:
                reason = "token_expired" if cached is not None else "no_token"
                logger.info(f"Starting new token generation (reason={reason})")
                self._refresh_task = asyncio.get_running_loop().create_task(self._refresh(reason))
            else:
                logger.info("Waiting for existing token generation to complete")
            task = self._refresh_task

        # Shielded so a cancelled waiter does not abort the shared refresh
        return await asyncio.shield(task)

    async def _refresh(self, reason: str) -> str:
        started_at = self._clock()
        dispatch_event(self._event_sink, TokenRefreshStarted(reason=reason))
        start_time = time.perf_counter()
        try:
            token = await self._generate_token(started_at)
            expires_at = started_at + self.token_validity_ms
            self.store(token, expires_at)
            latency_ms = (time.perf_counter() - start_time) * 1000
            logger.info("Auth token generated successfully")
            dispatch_event(self._event_sink, TokenRefreshSucceeded(expires_at_ms=expires_at, latency_ms=latency_ms))
            return token
        except Exception as e:
            logger.error(f"Token generation failed: {e}")
            dispatch_event(self._event_sink, TokenRefreshFailed(error_message=str(e)))
            raise
        finally:
            self._refresh_task = None

    async def _generate_token(self, timestamp_ms: int) -> str:
        """Signs a generateToken request and exchanges it for a bearer token."""
        payload = {
            "method": "generateToken",
            "params": {"timestamp": timestamp_ms},
        }
        message = canonical_json(payload)

        try:
            signature = await self._signer.sign_message(message)
        except Exception as e:
            raise AuthError(f"Failed to sign auth payload: {e}") from e

        custody = custody_credential(signature)
        logger.debug(f"Sending auth request with custody token {_redact(custody)}")

        try:
            response = await self._http.put(
                self._auth_url,
                content=message.encode("utf-8"),
                headers={
                    "Authorization": f"Bearer {custody}",
                    "Content-Type": "application/json",
                },
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            details = response_details(e.response)
            reason = error_message(details) or f"status {e.response.status_code}"
            raise AuthError(
                f"Failed to generate auth token: {reason}",
                status=e.response.status_code,
                details=details,
            ) from e
        except httpx.HTTPError as e:
            raise AuthError(f"Failed to generate auth token: {e}") from e

        try:
            return response.json()["result"]["token"]["secret"]
        except (ValueError, KeyError, TypeError) as e:
            raise AuthError(
                "Auth response did not contain a token secret.",
                status=response.status_code,
                details=response_details(response),
            ) from e
