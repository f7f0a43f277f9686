"""Main entry point for the castkit application.

Sets up the Typer CLI application, performs dependency injection (Composition Root),
defines CLI commands, and delegates execution to the CommandHandler.
"""

import asyncio
import logging
import sys
from typing import Annotated, Any, Callable, Coroutine, Dict, List, Optional

import typer

from castkit import __version__

# --- Core Layer ---
from castkit.core.command_handler import CommandHandler

# --- Infrastructure Layer ---
# Config
from castkit.infrastructure.config.settings import (
    get_api_url, get_bearer_token, get_cache_settings, get_config, get_fid, get_http_timeout,
    get_private_key, get_rate_limit, load_configuration,
)
# UI
from castkit.infrastructure.cli.display import ConsoleDisplay
# API client and its collaborators
from castkit.infrastructure.api.warpcast_client import WarpcastClient
from castkit.infrastructure.cache.ttl_cache import TTLCache
from castkit.infrastructure.resilience.rate_limiter import RateLimiter
# Monitoring
from castkit.infrastructure.monitoring.logger_setup import DEFAULT_LOG_FORMAT, register_secret, setup_logging

logger = logging.getLogger(__name__)

# --- Dependency Injection Container (Manual) ---

def create_dependencies() -> Dict[str, Any]:
    """Creates and wires up all dependencies for the application.

    This acts as the Composition Root.
    """
    dependencies: Dict[str, Any] = {}
    try:
        # 1. Load Configuration First
        load_configuration()
        log_level_name = str(get_config('logging.level', 'INFO')).upper()
        log_level = getattr(logging, log_level_name, logging.INFO)
        log_file = get_config('logging.file')
        log_format = get_config('logging.format', DEFAULT_LOG_FORMAT)
        setup_logging(log_level=log_level, log_file=log_file, log_format=log_format)
        logger.info("Configuration and logging initialized.")

        # 2. Instantiate Infrastructure Adapters & Services
        dependencies['ui'] = ConsoleDisplay()
        dependencies['cache_service'] = TTLCache(**get_cache_settings())
        dependencies['rate_limiter'] = RateLimiter(**get_rate_limit())

        # 3. Instantiate the API client (static token wins over signing)
        client_options = dict(
            base_url=get_api_url(),
            cache=dependencies['cache_service'],
            rate_limiter=dependencies['rate_limiter'],
            timeout=get_http_timeout(),
        )
        bearer_token = get_bearer_token()
        private_key = get_private_key()
        register_secret(bearer_token)
        register_secret(private_key)
        if bearer_token:
            logger.info("Using pre-provisioned bearer token.")
            dependencies['client'] = WarpcastClient(bearer_token=bearer_token, **client_options)
        elif private_key:
            dependencies['client'] = WarpcastClient.from_private_key(private_key, **client_options)
        else:
            logger.error("Neither WARPCAST_BEARER_TOKEN nor WARPCAST_PRIVATE_KEY is configured.")
            dependencies['ui'].display_error(
                "Fatal Error: set WARPCAST_PRIVATE_KEY (or WARPCAST_BEARER_TOKEN) in the environment or .env file."
            )
            sys.exit(1)

        # 4. Instantiate Command Handler
        dependencies['command_handler'] = CommandHandler(
            client=dependencies['client'],
            ui=dependencies['ui'],
        )
        logger.info("All dependencies initialized successfully.")
        return dependencies

    except (ValueError, OSError) as e:
        logger.error(f"Fatal Error during application initialization: {e}", exc_info=True)
        if 'ui' in dependencies:
            dependencies['ui'].display_error(f"Application Initialization Failed: {e}")
        else:
            print(f"FATAL ERROR during initialization: {e}", file=sys.stderr)
        sys.exit(1)

# Built on first command so that --help never touches configuration
_dependencies: Optional[Dict[str, Any]] = None

def get_dependencies() -> Dict[str, Any]:
    global _dependencies
    if _dependencies is None:
        _dependencies = create_dependencies()
    return _dependencies

# --- Typer App Definition ---
app = typer.Typer(
    name="castkit",
    help="castkit: rate-limited, cached Warpcast client for automated agents.",
    add_completion=False,
)

# --- Helper for Running Async Commands ---
def run_async(command: Callable[[CommandHandler], Coroutine[Any, Any, bool]]) -> None:
    """Runs one handler coroutine inside the client's lifecycle.

    Exits with code 1 when the command reports failure.
    """
    dependencies = get_dependencies()
    client = dependencies['client']
    handler: CommandHandler = dependencies['command_handler']

    async def runner() -> bool:
        async with client:
            return await command(handler)

    try:
        succeeded = asyncio.run(runner())
    except Exception as e:
        logger.error(f"Error executing async command: {e}", exc_info=True)
        dependencies['ui'].display_error(f"Command execution failed: {e}")
        succeeded = False
    if not succeeded:
        raise typer.Exit(code=1)

# --- CLI Commands ---

def _resolve_fid(fid: Optional[int]) -> int:
    """Falls back to WARPCAST_FID when no fid argument is given."""
    dependencies = get_dependencies()
    if fid is not None:
        return fid
    own_fid = get_fid()
    if own_fid is None:
        dependencies['ui'].display_error("No FID given and WARPCAST_FID is not configured.")
        raise typer.Exit(code=1)
    return own_fid

LimitOption = Annotated[int, typer.Option("--limit", "-n", min=1, help="Number of items per page.")]
CursorOption = Annotated[Optional[str], typer.Option("--cursor", help="Cursor from a previous page.")]

@app.command()
def profile(
    fid: Annotated[Optional[int], typer.Argument(help="Farcaster id of the user (default: WARPCAST_FID).")] = None,
):
    """Show a user's profile."""
    fid = _resolve_fid(fid)
    run_async(lambda handler: handler.handle_profile(fid))

@app.command()
def cast(
    text: Annotated[str, typer.Argument(help="Text of the cast.")],
    channel: Annotated[Optional[str], typer.Option("--channel", "-c", help="Channel to post in.")] = None,
    reply_to: Annotated[Optional[str], typer.Option("--reply-to", help="Hash of the cast to reply to.")] = None,
    reply_fid: Annotated[Optional[int], typer.Option("--reply-fid", help="Author fid of the cast replied to.")] = None,
    embed: Annotated[Optional[List[str]], typer.Option("--embed", "-e", help="URL to embed (repeatable).")] = None,
):
    """Publish a cast."""
    run_async(lambda handler: handler.handle_publish(
        text, channel=channel, reply_to=reply_to, reply_fid=reply_fid, embeds=embed,
    ))

@app.command()
def notifications(
    limit: LimitOption = 25,
    cursor: CursorOption = None,
):
    """List recent replies and mentions."""
    run_async(lambda handler: handler.handle_notifications(limit, cursor))

@app.command()
def timeline(
    fid: Annotated[Optional[int], typer.Argument(help="Farcaster id of the user (default: WARPCAST_FID).")] = None,
    limit: LimitOption = 25,
    cursor: CursorOption = None,
):
    """List a user's casts."""
    fid = _resolve_fid(fid)
    run_async(lambda handler: handler.handle_timeline(fid, limit, cursor))

@app.command()
def like(
    cast_hash: Annotated[str, typer.Argument(metavar="HASH", help="Hash of the cast.")],
):
    """Like a cast."""
    run_async(lambda handler: handler.handle_like(cast_hash))

@app.command()
def recast(
    cast_hash: Annotated[str, typer.Argument(metavar="HASH", help="Hash of the cast.")],
):
    """Recast a cast."""
    run_async(lambda handler: handler.handle_recast(cast_hash))

@app.command()
def follow(
    fid: Annotated[int, typer.Argument(help="Farcaster id to follow.")],
):
    """Follow a user."""
    run_async(lambda handler: handler.handle_follow(fid))

@app.command()
def unfollow(
    fid: Annotated[int, typer.Argument(help="Farcaster id to unfollow.")],
):
    """Unfollow a user."""
    run_async(lambda handler: handler.handle_unfollow(fid))

@app.command()
def logout():
    """Delete the current auth token."""
    run_async(lambda handler: handler.handle_logout())

def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"castkit {__version__}")
        raise typer.Exit()

@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option("--version", callback=_version_callback, is_eager=True, help="Show the version and exit."),
    ] = False,
):
    """castkit: rate-limited, cached Warpcast client for automated agents."""

# --- Main Execution Guard ---

def cli_entry_point():
    """Function to be called by the script entry point in pyproject.toml."""
    app()

if __name__ == "__main__":
    cli_entry_point()
