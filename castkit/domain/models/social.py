"""Domain models for the social graph: profiles, users, casts and channels.

Mapped from Warpcast API payloads by the API adapter. The adapter owns the
wire format; these structures carry only what callers use.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from .common import CastHash, ChannelId, Cursor, Fid

T = TypeVar("T")


@dataclass(frozen=True)
class Profile:
    """Public profile of a user, as shown next to their casts."""
    fid: Fid
    name: str
    username: str
    bio: str = ""
    pfp: Optional[str] = None       # Avatar URL
    address: Optional[str] = None   # Custody address, only known from the user endpoint


@dataclass
class User:
    """User summary returned by lookup, likes and recasters endpoints."""
    fid: Fid
    username: str
    display_name: str = ""
    pfp_url: Optional[str] = None
    bio: str = ""
    follower_count: int = 0
    following_count: int = 0


@dataclass(frozen=True)
class CastParent:
    """Reference to the cast being replied to."""
    hash: CastHash
    fid: Optional[Fid] = None


@dataclass(frozen=True)
class Cast:
    """A published cast with its author's profile."""
    hash: CastHash
    author_fid: Fid
    text: str
    profile: Profile
    timestamp: datetime
    in_reply_to: Optional[CastParent] = None


@dataclass(frozen=True)
class CastEmbed:
    url: str


@dataclass
class CastOptions:
    """Parameters for publishing a new cast."""
    text: str
    embeds: List[CastEmbed] = field(default_factory=list)
    parent: Optional[CastParent] = None
    channel_id: Optional[ChannelId] = None


@dataclass
class Channel:
    id: ChannelId
    name: str
    description: Optional[str] = None
    image_url: Optional[str] = None


@dataclass
class Verification:
    """An address verified as belonging to a user."""
    fid: Fid
    address: str
    timestamp: int
    version: str
    protocol: str


@dataclass
class Page(Generic[T]):
    """One page of a cursor-paginated collection.

    ``next_cursor`` is None on the last page.
    """
    items: List[T]
    next_cursor: Optional[Cursor] = None
