"""Interface for interacting with the user (output only).

Defines the contract for displaying social objects, errors, warnings and
informational messages, allowing different UI implementations.
"""

import abc
from typing import Any, Optional, Sequence

# Import relevant domain models
from castkit.domain.models.social import Cast, Profile

class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_profile(self, profile: Profile) -> None:
        """Displays a single user profile."""
        pass

    @abc.abstractmethod
    def display_casts(self, casts: Sequence[Cast], title: str = "Casts", next_cursor: Optional[str] = None) -> None:
        """Displays a list of casts.

        Args:
            casts: The casts to render, in the order given.
            title: Heading for the listing.
            next_cursor: Cursor for the next page, shown so the user can continue.
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
