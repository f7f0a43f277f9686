"""Interface for message signers.

The token manager only needs one capability from a key holder: sign this
canonical message. Implementations may hold a local key, talk to a hardware
wallet or call a remote KMS.
"""

import abc


class Signer(abc.ABC):
    """Abstract Base Class for a private-key signer."""

    @abc.abstractmethod
    async def sign_message(self, message: str) -> bytes:
        """Signs a text message with the holder's private key.

        Args:
            message: The exact text to sign.

        Returns:
            The raw signature bytes.

        Raises:
            Exception: If signing fails. The token manager wraps it in AuthError.
        """
        pass
