import pytest
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

from castkit.core.command_handler import CommandHandler
from castkit.domain.models.errors import AuthError, TransportError, ValidationError
from castkit.domain.models.social import Cast, CastEmbed, CastOptions, CastParent, Page, Profile
from castkit.infrastructure.api.warpcast_client import WarpcastClient

PROFILE = Profile(fid=42, name="Alice", username="alice")
CAST = Cast(
    hash="0xc1", author_fid=42, text="gm", profile=PROFILE,
    timestamp=datetime(2024, 1, 1, tzinfo=timezone.utc),
)

@pytest.fixture
def mock_client():
    return AsyncMock(spec=WarpcastClient)

@pytest.fixture
def command_handler(mock_client, mock_ui):
    """Fixture to create CommandHandler with a mocked client and UI."""
    return CommandHandler(client=mock_client, ui=mock_ui)

@pytest.mark.asyncio
async def test_handle_profile(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    mock_client.get_profile.return_value = PROFILE

    assert await command_handler.handle_profile(42) is True

    mock_client.get_profile.assert_awaited_once_with(42)
    mock_ui.display_profile.assert_called_once_with(PROFILE)
    mock_ui.display_error.assert_not_called()

@pytest.mark.asyncio
async def test_handle_profile_transport_error(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    """HTTP failures are shown with their status instead of being raised."""
    mock_client.get_profile.side_effect = TransportError("User not found", status=404, code="HTTP_404")

    assert await command_handler.handle_profile(99) is False

    mock_ui.display_error.assert_called_once_with("Profile lookup failed (404): User not found")
    mock_ui.display_profile.assert_not_called()

@pytest.mark.asyncio
async def test_handle_publish_builds_cast_options(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    mock_client.publish_cast.return_value = CAST

    ok = await command_handler.handle_publish(
        "gm", channel="dev", reply_to="0xroot", reply_fid=7, embeds=["https://a.test", "https://b.test"],
    )

    assert ok is True
    mock_client.publish_cast.assert_awaited_once_with(CastOptions(
        text="gm",
        embeds=[CastEmbed("https://a.test"), CastEmbed("https://b.test")],
        parent=CastParent(hash="0xroot", fid=7),
        channel_id="dev",
    ))
    mock_ui.display_info.assert_called_once_with("Cast published: 0xc1")

@pytest.mark.asyncio
async def test_handle_publish_plain_text(command_handler: CommandHandler, mock_client: AsyncMock):
    mock_client.publish_cast.return_value = CAST

    await command_handler.handle_publish("gm")

    mock_client.publish_cast.assert_awaited_once_with(CastOptions(text="gm"))

@pytest.mark.asyncio
async def test_handle_publish_reply_fid_without_hash(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    assert await command_handler.handle_publish("gm", reply_fid=7) is False

    mock_client.publish_cast.assert_not_awaited()
    mock_ui.display_error.assert_called_once_with("--reply-fid requires --reply-to.")

@pytest.mark.asyncio
async def test_handle_publish_validation_error(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    mock_client.publish_cast.side_effect = ValidationError("text must be a non-empty string")

    assert await command_handler.handle_publish("") is False

    mock_ui.display_error.assert_called_once_with("Publishing failed: text must be a non-empty string")

@pytest.mark.asyncio
async def test_handle_notifications(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    mock_client.get_notifications.return_value = Page(items=[CAST], next_cursor="older")

    assert await command_handler.handle_notifications(10, cursor="newer") is True

    mock_client.get_notifications.assert_awaited_once_with(limit=10, cursor="newer")
    mock_ui.display_casts.assert_called_once_with([CAST], title="Notifications", next_cursor="older")

@pytest.mark.asyncio
async def test_handle_timeline(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    mock_client.get_timeline.return_value = Page(items=[CAST])

    assert await command_handler.handle_timeline(42, 5) is True

    mock_client.get_timeline.assert_awaited_once_with(42, page_size=5, cursor=None)
    mock_ui.display_casts.assert_called_once_with([CAST], title="Timeline of 42", next_cursor=None)

@pytest.mark.asyncio
async def test_handle_like_auth_error(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    mock_client.like_cast.side_effect = AuthError("Failed to generate auth token: Invalid signature", status=401)

    assert await command_handler.handle_like("0xabc") is False

    mock_ui.display_error.assert_called_once_with("Like failed: Failed to generate auth token: Invalid signature")

@pytest.mark.asyncio
@pytest.mark.parametrize("handler_name, client_method, argument, message", [
    ("handle_like", "like_cast", "0xabc", "Liked cast 0xabc."),
    ("handle_recast", "recast", "0xabc", "Recast 0xabc."),
    ("handle_follow", "follow_user", 7, "Now following 7."),
    ("handle_unfollow", "unfollow_user", 7, "Unfollowed 7."),
])
async def test_simple_actions(command_handler, mock_client, mock_ui, handler_name, client_method, argument, message):
    getattr(mock_client, client_method).return_value = True

    assert await getattr(command_handler, handler_name)(argument) is True

    getattr(mock_client, client_method).assert_awaited_once_with(argument)
    mock_ui.display_info.assert_called_once_with(message)

@pytest.mark.asyncio
async def test_handle_logout(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    assert await command_handler.handle_logout() is True

    mock_client.delete_auth.assert_awaited_once_with()
    mock_ui.display_info.assert_called_once_with("Auth token deleted.")

@pytest.mark.asyncio
async def test_handle_logout_network_error(command_handler: CommandHandler, mock_client: AsyncMock, mock_ui: MagicMock):
    mock_client.delete_auth.side_effect = TransportError("Request failed due to network error: boom", code="NETWORK")

    assert await command_handler.handle_logout() is False

    mock_ui.display_error.assert_called_once_with("Logout failed: Request failed due to network error: boom")
