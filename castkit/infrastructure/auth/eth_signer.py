"""Signer backed by a local Ethereum private key.

Produces EIP-191 ``personal_sign`` signatures, the scheme Warpcast accepts
for custody-signed auth requests.
"""

import logging

from eth_account import Account
from eth_account.messages import encode_defunct

from castkit.domain.interfaces.signer import Signer

logger = logging.getLogger(__name__)

class EthereumSigner(Signer):
    """Signs messages with the custody account's private key."""

    def __init__(self, private_key: str):
        """Initializes the signer.

        Args:
            private_key: Hex-encoded secp256k1 key, with or without 0x prefix.

        Raises:
            ValueError: If the key is missing or malformed.
        """
        if not private_key:
            raise ValueError("Private key not provided.")
        try:
            self._account = Account.from_key(private_key)
        except (ValueError, TypeError) as e:
            # Don't echo the key back in the message
            raise ValueError(f"Invalid private key: {type(e).__name__}") from None
        logger.info(f"EthereumSigner initialized for address {self.address}")

    @property
    def address(self) -> str:
        """Checksummed address of the signing account."""
        return self._account.address

    async def sign_message(self, message: str) -> bytes:
        signed = self._account.sign_message(encode_defunct(text=message))
        return bytes(signed.signature)
