"""Asynchronous client for the Warpcast REST API.

Every request goes through the same pipeline: an optional cache lookup, the
shared rate limiter, a request hook that attaches the bearer token, the HTTP
call, and mapping of the JSON ``result`` into domain objects. Transport
failures are normalized into TransportError and re-raised; nothing is retried
here.
"""

import asyncio
import dataclasses
import logging
import time
from urllib.parse import quote
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, TypeVar

import httpx

# Domain Layer Imports
from castkit.domain.events.api_events import (
    ApiCallFailed, ApiCallInitiated, ApiCallSucceeded, CacheHit, EventSink, dispatch_event,
)
from castkit.domain.interfaces.cache import CacheService
from castkit.domain.models.common import CacheKey, CastHash, ChannelId, Cursor, Fid, OperationKey
from castkit.domain.models.errors import (
    AuthError, NotFoundError, TransportError, TransportTimeoutError, ValidationError,
)
from castkit.domain.models.social import (
    Cast, CastOptions, CastParent, Channel, Page, Profile, User, Verification,
)

# Infrastructure Layer Imports
from castkit.infrastructure.api.http_errors import normalize_http_error, response_details
from castkit.infrastructure.auth.eth_signer import EthereumSigner
from castkit.infrastructure.auth.token_manager import AUTH_PATH, DEFAULT_BASE_URL, TokenManager
from castkit.infrastructure.cache.ttl_cache import TTLCache
from castkit.infrastructure.resilience.rate_limiter import RateLimiter

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_PAGE_SIZE = 25
CACHE_NAMESPACE = "warpcast"
NOTIFICATION_CAST_TYPES = ("cast-reply", "cast-mention")


# --- Response Mapping ---

def _timestamp(value: Any) -> datetime:
    """Converts an epoch-milliseconds timestamp to an aware datetime."""
    return datetime.fromtimestamp(int(value) / 1000, tz=timezone.utc)

def _profile_from_user(user: Dict[str, Any], address: Optional[str] = None) -> Profile:
    return Profile(
        fid=Fid(user["fid"]),
        name=user.get("displayName") or "",
        username=user.get("username") or "",
        bio=((user.get("profile") or {}).get("bio") or {}).get("text") or "",
        pfp=(user.get("pfp") or {}).get("url"),
        address=address,
    )

def _user_from_payload(user: Dict[str, Any]) -> User:
    return User(
        fid=Fid(user["fid"]),
        username=user.get("username") or "",
        display_name=user.get("displayName") or "",
        pfp_url=(user.get("pfp") or {}).get("url"),
        bio=((user.get("profile") or {}).get("bio") or {}).get("text") or "",
        follower_count=int(user.get("followerCount") or 0),
        following_count=int(user.get("followingCount") or 0),
    )

def _cast_from_payload(cast: Dict[str, Any], profile: Optional[Profile] = None) -> Cast:
    """Maps a cast payload; the author summary stands in for a missing profile."""
    author = cast["author"]
    in_reply_to = None
    if cast.get("parentHash"):
        parent_fid = (cast.get("parentAuthor") or {}).get("fid")
        in_reply_to = CastParent(
            hash=CastHash(cast["parentHash"]),
            fid=Fid(parent_fid) if parent_fid is not None else None,
        )
    return Cast(
        hash=CastHash(cast["hash"]),
        author_fid=Fid(author["fid"]),
        text=cast.get("text") or "",
        profile=profile or _profile_from_user(author),
        timestamp=_timestamp(cast["timestamp"]),
        in_reply_to=in_reply_to,
    )

def _cast_from_notification(notification: Dict[str, Any]) -> Optional[Cast]:
    """Maps a reply/mention notification to the cast it carries, else None."""
    if notification.get("type") not in NOTIFICATION_CAST_TYPES:
        return None
    preview_items = notification.get("previewItems") or []
    if not preview_items:
        return None
    mention = preview_items[0]
    cast = (mention.get("content") or {}).get("cast")
    if not cast:
        return None
    actor = mention["actor"]
    in_reply_to = None
    if cast.get("parentHash"):
        parent_fid = (cast.get("parentAuthor") or {}).get("fid")
        in_reply_to = CastParent(
            hash=CastHash(cast["parentHash"]),
            fid=Fid(parent_fid) if parent_fid is not None else None,
        )
    return Cast(
        hash=CastHash(cast["hash"]),
        author_fid=Fid(actor["fid"]),
        text=cast.get("text") or "",
        profile=_profile_from_user(actor),
        timestamp=_timestamp(mention.get("timestamp", cast.get("timestamp"))),
        in_reply_to=in_reply_to,
    )

def _next_cursor(result: Dict[str, Any]) -> Optional[Cursor]:
    """Reads the pagination cursor from either ``next`` shape the API uses."""
    next_value = result.get("next")
    if isinstance(next_value, dict):
        next_value = next_value.get("cursor")
    return Cursor(next_value) if next_value else None


# --- Input Validation ---

def _require_fid(fid: Any, name: str = "fid") -> Fid:
    if isinstance(fid, bool) or not isinstance(fid, int) or fid <= 0:
        raise ValidationError(f"{name} must be a positive integer, got {fid!r}")
    return Fid(fid)

def _require_text(value: Any, name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{name} must be a non-empty string")
    return value

def _require_limit(limit: Any) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
        raise ValidationError(f"limit must be a positive integer, got {limit!r}")
    return limit


class WarpcastClient:
    """Rate-limited, authenticated and cached access to the Warpcast API.

    One instance is meant to be shared by every concurrent caller: the cache
    and the rate limit budget are per instance.
    """

    def __init__(
        self,
        token_manager: Optional[TokenManager] = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        cache: Optional[CacheService] = None,
        rate_limiter: Optional[RateLimiter] = None,
        bearer_token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        event_sink: Optional[EventSink] = None,
    ):
        """Initializes the client.

        Args:
            token_manager: Source of signed bearer tokens.
            base_url: API root URL.
            cache: Response cache (a fresh TTLCache if None).
            rate_limiter: Shared request budget (100 req/min if None).
            bearer_token: Static token used instead of the token manager.
            timeout: Overall per-request timeout in seconds.
            transport: httpx transport override (tests, proxies).
            event_sink: Optional receiver for API call events.

        Raises:
            ValueError: If neither a token manager nor a bearer token is given.
        """
        if token_manager is None and not bearer_token:
            raise ValueError("Either a token manager or a static bearer token is required.")
        self.base_url = base_url.rstrip("/")
        self.token_manager = token_manager
        self.cache = cache if cache is not None else TTLCache()
        self.rate_limiter = rate_limiter or RateLimiter(event_sink=event_sink)
        self._bearer_token = bearer_token
        self._event_sink = event_sink
        self._timeout = timeout
        self._owned_clients: List[httpx.AsyncClient] = []
        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={"Accept": "application/json"},
            timeout=timeout,
            transport=transport,
            event_hooks={"request": [self._authorize]},
        )
        self._owned_clients.append(self._http)
        logger.info(
            f"WarpcastClient initialized for {self.base_url} "
            f"(auth={'static token' if bearer_token else 'signed token'})"
        )

    @classmethod
    def from_private_key(
        cls,
        private_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        event_sink: Optional[EventSink] = None,
        **kwargs: Any,
    ) -> "WarpcastClient":
        """Builds a client that signs its own tokens with a custody key."""
        # The token exchange needs a client without the auth hook
        auth_http = httpx.AsyncClient(timeout=timeout, transport=transport)
        token_manager = TokenManager(
            EthereumSigner(private_key),
            auth_http,
            base_url=base_url,
            event_sink=event_sink,
        )
        client = cls(
            token_manager,
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            event_sink=event_sink,
            **kwargs,
        )
        client._owned_clients.append(auth_http)
        return client

    # --- Lifecycle ---

    async def __aenter__(self) -> "WarpcastClient":
        if isinstance(self.cache, TTLCache):
            self.cache.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Stops the cache sweep and closes the HTTP clients this instance owns."""
        if isinstance(self.cache, TTLCache):
            await self.cache.stop()
        for http in self._owned_clients:
            await http.aclose()
        logger.debug("WarpcastClient closed")

    # --- Request Pipeline ---

    async def _authorize(self, request: httpx.Request) -> None:
        """Request hook: attaches the bearer token before every send."""
        if self._bearer_token:
            token = self._bearer_token
        else:
            token = await self.token_manager.get_valid_token()
        request.headers["Authorization"] = f"Bearer {token}"

    async def _request(
        self,
        operation_key: str,
        method: str,
        path: str,
        *,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Sends one rate-limited request and returns the body's ``result``.

        Raises:
            TransportError: Network failure, timeout or non-2xx status.
            AuthError: The bearer token could not be obtained.
        """
        key = OperationKey(operation_key)

        async def send() -> Dict[str, Any]:
            dispatch_event(self._event_sink, ApiCallInitiated(operation_key=key))
            start_time = time.perf_counter()
            try:
                # Deadline covers the token hook and a slowly streamed body too
                response = await asyncio.wait_for(
                    self._http.request(method, path, params=params, json=json),
                    timeout=self._timeout,
                )
                response.raise_for_status()
            except (httpx.HTTPError, asyncio.TimeoutError) as e:
                if isinstance(e, asyncio.TimeoutError):
                    error = TransportTimeoutError(f"Request exceeded {self._timeout}s: {method} {path}")
                else:
                    error = normalize_http_error(e)
                logger.warning(f"{method} {path} failed for '{key}': {error!r}")
                dispatch_event(self._event_sink, ApiCallFailed(
                    operation_key=key, error_type=type(error).__name__,
                    error_message=str(error), status=error.status,
                ))
                raise error from e
            except AuthError as e:
                logger.error(f"Could not authenticate '{key}': {e}")
                dispatch_event(self._event_sink, ApiCallFailed(
                    operation_key=key, error_type=type(e).__name__,
                    error_message=str(e), status=e.status,
                ))
                raise

            latency_ms = (time.perf_counter() - start_time) * 1000
            dispatch_event(self._event_sink, ApiCallSucceeded(operation_key=key, latency_ms=latency_ms))
            body = response_details(response)
            if isinstance(body, dict) and isinstance(body.get("result"), dict):
                return body["result"]
            return {}

        return await self.rate_limiter.execute(key, send)

    def _map(self, operation_key: str, result: Dict[str, Any], mapper: Callable[[Dict[str, Any]], T]) -> T:
        """Applies a response mapper, reporting unexpected shapes as TransportError."""
        try:
            return mapper(result)
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Unexpected response shape for '{operation_key}': {e}")
            raise TransportError(
                f"Unexpected response shape for {operation_key}: {e}",
                code="BAD_RESPONSE",
                details=result,
            ) from e

    async def _cached(self, key: str) -> Optional[Any]:
        value = await self.cache.get(CacheKey(key))
        if value is not None:
            dispatch_event(self._event_sink, CacheHit(cache_key=key))
        return value

    @staticmethod
    def _cache_key(resource: str, identifier: Any) -> str:
        return f"{CACHE_NAMESPACE}/{resource}/{identifier}"

    async def invalidate(self, cache_key: str) -> None:
        """Removes one cached response, e.g. ``warpcast/profile/42``."""
        await self.cache.delete(CacheKey(cache_key))

    # --- Profiles & Users ---

    async def get_profile(self, fid: int) -> Profile:
        """Returns a user's profile, served from cache within the TTL."""
        fid = _require_fid(fid)
        cache_key = self._cache_key("profile", fid)
        cached = await self._cached(cache_key)
        if cached is not None:
            return cached

        op = f"get_profile:{fid}"
        result = await self._request(op, "GET", "/v2/user", params={"fid": fid})

        def to_profile(data: Dict[str, Any]) -> Profile:
            extras = data.get("extras") or {}
            profile = _profile_from_user(data["user"], address=extras.get("custodyAddress"))
            return dataclasses.replace(profile, fid=fid)

        profile = self._map(op, result, to_profile)
        await self.cache.set(CacheKey(cache_key), profile)
        return profile

    async def get_user_by_fid(self, fid: int) -> User:
        fid = _require_fid(fid)
        op = f"get_user_by_fid:{fid}"
        result = await self._request(op, "GET", "/v2/user", params={"fid": fid})
        return self._map(op, result, lambda data: _user_from_payload(data["user"]))

    async def get_user_by_username(self, username: str) -> User:
        username = _require_text(username, "username")
        op = f"get_user_by_username:{username}"
        result = await self._request(op, "GET", "/v2/user-by-username", params={"username": username})
        return self._map(op, result, lambda data: _user_from_payload(data["user"]))

    async def get_verifications(self, fid: int, limit: int = DEFAULT_PAGE_SIZE) -> List[Verification]:
        fid = _require_fid(fid)
        limit = _require_limit(limit)
        op = f"get_verifications:{fid}"
        result = await self._request(op, "GET", "/v2/verifications", params={"fid": fid, "limit": limit})

        def to_verifications(data: Dict[str, Any]) -> List[Verification]:
            return [
                Verification(
                    fid=Fid(item["fid"]),
                    address=item["address"],
                    timestamp=int(item.get("timestamp") or 0),
                    version=str(item.get("version") or ""),
                    protocol=str(item.get("protocol") or ""),
                )
                for item in data.get("verifications") or []
            ]

        return self._map(op, result, to_verifications)

    # --- Casts ---

    async def get_cast(self, cast_hash: str) -> Cast:
        """Returns a single cast with its author's full profile.

        Raises:
            NotFoundError: If the thread does not contain the cast.
        """
        cast_hash = _require_text(cast_hash, "cast_hash")
        cache_key = self._cache_key("cast", cast_hash)
        cached = await self._cached(cache_key)
        if cached is not None:
            return cached

        op = f"get_cast:{cast_hash}"
        result = await self._request(op, "GET", "/v2/thread-casts", params={"castHash": cast_hash})
        payload = self._map(
            op, result,
            lambda data: next((c for c in data["casts"] if c.get("hash") == cast_hash), None),
        )
        if payload is None:
            raise NotFoundError(f"Cast {cast_hash} not found in thread")

        author_fid = self._map(op, payload, lambda data: data["author"]["fid"])
        profile = await self.get_profile(author_fid)
        cast = self._map(op, payload, lambda data: _cast_from_payload(data, profile))
        await self.cache.set(CacheKey(cache_key), cast)
        return cast

    async def get_thread_casts(self, cast_hash: str) -> List[Cast]:
        cast_hash = _require_text(cast_hash, "cast_hash")
        cache_key = self._cache_key("threadCasts", cast_hash)
        cached = await self._cached(cache_key)
        if cached is not None:
            return list(cached)

        op = f"get_thread_casts:{cast_hash}"
        result = await self._request(op, "GET", "/v2/thread-casts", params={"castHash": cast_hash})
        casts = self._map(op, result, lambda data: [_cast_from_payload(c) for c in data["casts"]])
        await self.cache.set(CacheKey(cache_key), list(casts))
        return casts

    async def get_casts_by_fid(
        self, fid: int, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None
    ) -> Page[Cast]:
        fid = _require_fid(fid)
        params: Dict[str, Any] = {"fid": fid, "limit": _require_limit(limit)}
        if cursor:
            params["cursor"] = cursor
        op = f"get_casts_by_fid:{fid}"
        result = await self._request(op, "GET", "/v2/casts", params=params)
        return self._map(op, result, lambda data: Page(
            items=[_cast_from_payload(c) for c in data["casts"]],
            next_cursor=_next_cursor(data),
        ))

    async def get_replies(
        self, cast_hash: str, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None
    ) -> Page[Cast]:
        cast_hash = _require_text(cast_hash, "cast_hash")
        params: Dict[str, Any] = {"threadHash": cast_hash, "limit": _require_limit(limit)}
        if cursor:
            params["cursor"] = cursor
        op = f"get_replies:{cast_hash}"
        result = await self._request(op, "GET", "/v2/all-casts-in-thread", params=params)
        return self._map(op, result, lambda data: Page(
            items=[_cast_from_payload(c) for c in data["casts"]],
            next_cursor=_next_cursor(data),
        ))

    async def get_timeline(
        self, fid: int, page_size: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None
    ) -> Page[Cast]:
        """Returns a user's casts with each author's full (cached) profile."""
        page = await self.get_casts_by_fid(fid, page_size, cursor)
        timeline = []
        for cast in page.items:
            profile = await self.get_profile(cast.author_fid)
            timeline.append(dataclasses.replace(cast, profile=profile))
        return Page(items=timeline, next_cursor=page.next_cursor)

    async def publish_cast(self, options: CastOptions) -> Cast:
        _require_text(options.text, "text")
        body: Dict[str, Any] = {"text": options.text}
        if options.embeds:
            body["embeds"] = [{"url": embed.url} for embed in options.embeds]
        if options.parent is not None:
            parent: Dict[str, Any] = {"hash": options.parent.hash}
            if options.parent.fid is not None:
                parent["fid"] = options.parent.fid
            body["parent"] = parent
        if options.channel_id:
            body["channel_key"] = options.channel_id

        op = "publish_cast"
        result = await self._request(op, "POST", "/v2/casts", json=body)
        cast = self._map(op, result, lambda data: _cast_from_payload(data["cast"]))
        logger.info(f"Published cast {cast.hash}")
        return cast

    # --- Reactions & Follows ---

    async def like_cast(self, cast_hash: str) -> bool:
        cast_hash = _require_text(cast_hash, "cast_hash")
        await self._request(f"like_cast:{cast_hash}", "PUT", "/v2/cast-likes", json={"cast_hash": cast_hash})
        return True

    async def unlike_cast(self, cast_hash: str) -> bool:
        cast_hash = _require_text(cast_hash, "cast_hash")
        await self._request(f"unlike_cast:{cast_hash}", "DELETE", "/v2/cast-likes", json={"cast_hash": cast_hash})
        return True

    async def recast(self, cast_hash: str) -> bool:
        cast_hash = _require_text(cast_hash, "cast_hash")
        await self._request(f"recast:{cast_hash}", "PUT", "/v2/recasts", json={"cast_hash": cast_hash})
        return True

    async def unrecast(self, cast_hash: str) -> bool:
        cast_hash = _require_text(cast_hash, "cast_hash")
        await self._request(f"unrecast:{cast_hash}", "DELETE", "/v2/recasts", json={"cast_hash": cast_hash})
        return True

    async def follow_user(self, target_fid: int) -> bool:
        target_fid = _require_fid(target_fid, "target_fid")
        await self._request(f"follow_user:{target_fid}", "PUT", "/v2/follows", json={"target_fid": target_fid})
        return True

    async def unfollow_user(self, target_fid: int) -> bool:
        target_fid = _require_fid(target_fid, "target_fid")
        await self._request(f"unfollow_user:{target_fid}", "DELETE", "/v2/follows", json={"target_fid": target_fid})
        return True

    async def get_likes(
        self, cast_hash: str, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None
    ) -> Page[User]:
        return await self._list_users("get_likes", "/v2/cast-likes", cast_hash, limit, cursor)

    async def get_recasters(
        self, cast_hash: str, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None
    ) -> Page[User]:
        return await self._list_users("get_recasters", "/v2/cast-recasters", cast_hash, limit, cursor)

    async def _list_users(
        self, name: str, path: str, cast_hash: str, limit: int, cursor: Optional[str]
    ) -> Page[User]:
        cast_hash = _require_text(cast_hash, "cast_hash")
        params: Dict[str, Any] = {"castHash": cast_hash, "limit": _require_limit(limit)}
        if cursor:
            params["cursor"] = cursor
        op = f"{name}:{cast_hash}"
        result = await self._request(op, "GET", path, params=params)
        return self._map(op, result, lambda data: Page(
            items=[_user_from_payload(u) for u in data["users"]],
            next_cursor=_next_cursor(data),
        ))

    # --- Notifications & Channels ---

    async def get_notifications(self, limit: int = DEFAULT_PAGE_SIZE, cursor: Optional[str] = None) -> Page[Cast]:
        """Returns replies and mentions, caching each cast for later lookups."""
        params: Dict[str, Any] = {"limit": _require_limit(limit), "tab": "all"}
        if cursor:
            params["cursor"] = cursor
        op = "get_notifications"
        result = await self._request(op, "GET", "/v1/notifications-for-tab", params=params)

        def to_page(data: Dict[str, Any]) -> Page[Cast]:
            casts = []
            for notification in data["notifications"]:
                cast = _cast_from_notification(notification)
                if cast is not None:
                    casts.append(cast)
            return Page(items=casts, next_cursor=_next_cursor(data))

        page = self._map(op, result, to_page)
        for cast in page.items:
            await self.cache.set(CacheKey(self._cache_key("cast", cast.hash)), cast)
        logger.debug(f"Fetched {len(page.items)} reply/mention notifications")
        return page

    async def get_channel(self, channel_id: str) -> Channel:
        channel_id = _require_text(channel_id, "channel_id")
        op = f"get_channel:{channel_id}"
        result = await self._request(op, "GET", f"/v2/channel/{quote(channel_id, safe='')}")

        def to_channel(data: Dict[str, Any]) -> Channel:
            channel = data["channel"]
            return Channel(
                id=ChannelId(channel["id"]),
                name=channel.get("name") or channel["id"],
                description=channel.get("description"),
                image_url=channel.get("imageUrl"),
            )

        return self._map(op, result, to_channel)

    # --- Auth ---

    async def delete_auth(self) -> None:
        """Revokes the current bearer token server-side and forgets it locally."""
        await self._request("delete_auth", "DELETE", AUTH_PATH)
        if self.token_manager is not None:
            self.token_manager.invalidate()
        logger.info("Successfully deleted auth token")
