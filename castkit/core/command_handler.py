"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py), calls the matching
WarpcastClient operation and renders the result through the UserInterface.
Library errors are reported to the user here; the handler returns whether the
command succeeded so the entry point can set the exit code.
"""

import logging
from typing import List, Optional

# Domain Layer Imports
from castkit.domain.interfaces.user_interface import UserInterface
from castkit.domain.models.common import CastHash, ChannelId, Fid
from castkit.domain.models.errors import AuthError, CastkitError, TransportError
from castkit.domain.models.social import CastEmbed, CastOptions, CastParent

# Infrastructure Layer Imports
from castkit.infrastructure.api.warpcast_client import WarpcastClient

logger = logging.getLogger(__name__)

class CommandHandler:
    """Handles incoming commands and delegates to the API client."""

    def __init__(self, client: WarpcastClient, ui: UserInterface):
        """Initializes the CommandHandler with the shared client and the UI."""
        self.client = client
        self.ui = ui

    def _report(self, action: str, error: CastkitError) -> bool:
        """Shows a library error to the user and logs it. Always returns False."""
        if isinstance(error, TransportError) and error.status is not None:
            message = f"{action} failed ({error.status}): {error}"
        else:
            message = f"{action} failed: {error}"
        if isinstance(error, AuthError):
            logger.error(f"{action} failed during authentication: {error}")
        else:
            logger.error(f"{action} failed: {error!r}")
        self.ui.display_error(message)
        return False

    async def handle_profile(self, fid: int) -> bool:
        """Handles the 'profile' command."""
        logger.info(f"Handling 'profile' command for fid: {fid}")
        try:
            profile = await self.client.get_profile(Fid(fid))
        except CastkitError as e:
            return self._report("Profile lookup", e)
        self.ui.display_profile(profile)
        return True

    async def handle_publish(
        self,
        text: str,
        channel: Optional[str] = None,
        reply_to: Optional[str] = None,
        reply_fid: Optional[int] = None,
        embeds: Optional[List[str]] = None,
    ) -> bool:
        """Handles the 'cast' command."""
        logger.info(f"Handling 'cast' command (channel={channel}, reply_to={reply_to})")
        if reply_fid is not None and reply_to is None:
            self.ui.display_error("--reply-fid requires --reply-to.")
            return False

        parent = None
        if reply_to:
            parent = CastParent(CastHash(reply_to), Fid(reply_fid) if reply_fid is not None else None)
        options = CastOptions(
            text=text,
            embeds=[CastEmbed(url) for url in embeds or []],
            parent=parent,
            channel_id=ChannelId(channel) if channel else None,
        )
        try:
            cast = await self.client.publish_cast(options)
        except CastkitError as e:
            return self._report("Publishing", e)
        self.ui.display_info(f"Cast published: {cast.hash}")
        return True

    async def handle_notifications(self, limit: int, cursor: Optional[str] = None) -> bool:
        """Handles the 'notifications' command (replies and mentions only)."""
        logger.info(f"Handling 'notifications' command (limit={limit})")
        try:
            page = await self.client.get_notifications(limit=limit, cursor=cursor)
        except CastkitError as e:
            return self._report("Fetching notifications", e)
        self.ui.display_casts(page.items, title="Notifications", next_cursor=page.next_cursor)
        return True

    async def handle_timeline(self, fid: int, limit: int, cursor: Optional[str] = None) -> bool:
        logger.info(f"Handling 'timeline' command for fid: {fid} (limit={limit})")
        try:
            page = await self.client.get_timeline(Fid(fid), page_size=limit, cursor=cursor)
        except CastkitError as e:
            return self._report("Fetching timeline", e)
        self.ui.display_casts(page.items, title=f"Timeline of {fid}", next_cursor=page.next_cursor)
        return True

    async def handle_like(self, cast_hash: str) -> bool:
        logger.info(f"Handling 'like' command for cast: {cast_hash}")
        try:
            await self.client.like_cast(cast_hash)
        except CastkitError as e:
            return self._report("Like", e)
        self.ui.display_info(f"Liked cast {cast_hash}.")
        return True

    async def handle_recast(self, cast_hash: str) -> bool:
        logger.info(f"Handling 'recast' command for cast: {cast_hash}")
        try:
            await self.client.recast(cast_hash)
        except CastkitError as e:
            return self._report("Recast", e)
        self.ui.display_info(f"Recast {cast_hash}.")
        return True

    async def handle_follow(self, fid: int) -> bool:
        logger.info(f"Handling 'follow' command for fid: {fid}")
        try:
            await self.client.follow_user(Fid(fid))
        except CastkitError as e:
            return self._report("Follow", e)
        self.ui.display_info(f"Now following {fid}.")
        return True

    async def handle_unfollow(self, fid: int) -> bool:
        logger.info(f"Handling 'unfollow' command for fid: {fid}")
        try:
            await self.client.unfollow_user(Fid(fid))
        except CastkitError as e:
            return self._report("Unfollow", e)
        self.ui.display_info(f"Unfollowed {fid}.")
        return True

    async def handle_logout(self) -> bool:
        """Handles the 'logout' command by revoking the current auth token."""
        logger.info("Handling 'logout' command")
        try:
            await self.client.delete_auth()
        except CastkitError as e:
            return self._report("Logout", e)
        self.ui.display_info("Auth token deleted.")
        return True
