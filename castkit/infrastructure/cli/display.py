import logging
from typing import Any, Optional, Sequence

from rich.box import HEAVY, ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from castkit.domain.interfaces.user_interface import UserInterface
from castkit.domain.models.social import Cast, Profile

logger = logging.getLogger(__name__)

# Cast text longer than this is cut in listings
MAX_LISTING_TEXT = 280

class ConsoleDisplay(UserInterface):
    """Concrete implementation of UserInterface using the rich library for console output."""

    def __init__(self, console: Optional[Console] = None):
        """Initializes the rich Console (an injected one is used as-is)."""
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    def display_profile(self, profile: Profile) -> None:
        """Renders a profile as a two-column panel."""
        logger.debug(f"Displaying profile for fid {profile.fid}")
        table = Table(show_header=False, box=SIMPLE, padding=(0, 1))
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
        table.add_row("FID", str(profile.fid))
        table.add_row("Username", f"@{profile.username}" if profile.username else "-")
        table.add_row("Name", profile.name or "-")
        if profile.bio:
            table.add_row("Bio", profile.bio)
        if profile.pfp:
            table.add_row("Avatar", profile.pfp)
        if profile.address:
            table.add_row("Custody", profile.address)

        panel = Panel(
            table,
            title=f"[bold white]{profile.name or profile.username or profile.fid}[/bold white]",
            title_align="left",
            border_style="blue",
            box=ROUNDED,
            padding=(0, 1),
        )
        self.console.print(panel)

    def display_casts(self, casts: Sequence[Cast], title: str = "Casts", next_cursor: Optional[str] = None) -> None:
        """Renders casts in a table, oldest last as the API returns them.

        Args:
            casts: The casts to render.
            title: Table title.
            next_cursor: Printed under the table when more pages exist.
        """
        logger.debug(f"Displaying {len(casts)} casts under '{title}'")
        if not casts:
            self.display_info(f"No {title.lower()} to show.")
            return

        table = Table(title=title, box=ROUNDED, border_style="cyan", show_lines=True)
        table.add_column("Time", style="dim", no_wrap=True)
        table.add_column("Author", style="bold green", no_wrap=True)
        table.add_column("Text")
        table.add_column("Hash", style="dim", no_wrap=True)

        for cast in casts:
            text = Text(cast.text)
            text.truncate(MAX_LISTING_TEXT, overflow="ellipsis")
            if cast.in_reply_to is not None:
                text = Text.assemble((f"reply to {cast.in_reply_to.hash[:10]}\n", "dim"), text)
            author = f"@{cast.profile.username}" if cast.profile.username else str(cast.author_fid)
            table.add_row(
                cast.timestamp.strftime("%Y-%m-%d %H:%M"),
                author,
                text,
                cast.hash[:10],
            )

        self.console.print(table)
        if next_cursor:
            self.console.print(f"[dim]More results: --cursor {next_cursor}[/dim]")

    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message in a distinct style.

        Args:
            error_message: The error message to display.
        """
        panel = Panel(
            Text(error_message, style="white"),
            title="[bold red]Error[/bold red]",
            border_style="red",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_info(self, info_message: str, **kwargs: Any) -> None:
        panel = Panel(
            Text(info_message, style="white"),
            title="[bold blue]Info[/bold blue]",
            border_style="blue",
            box=SIMPLE,
            padding=(0, 1)
        )
        self.console.print(panel)

    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message with enhanced styling.

        Args:
            warning_message: The warning message to display.
        """
        logger.warning(f"Display warning: {warning_message}")
        panel = Panel(
            Text(warning_message, style="white"),
            title="[bold yellow]Warning[/bold yellow]",
            border_style="yellow",
            box=HEAVY,
            padding=(0, 1)
        )
        self.console.print(panel)
