import pytest
from eth_account import Account
from eth_account.messages import encode_defunct

from castkit.infrastructure.auth.eth_signer import EthereumSigner

# Well-known throwaway key from the eth-account documentation
TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
TEST_ADDRESS = "0x2c7536E3605D9C16a7a3D7b1898e529396a65c23"

def test_address_is_derived_from_key():
    assert EthereumSigner(TEST_KEY).address == TEST_ADDRESS

@pytest.mark.asyncio
async def test_signature_recovers_to_custody_address():
    signer = EthereumSigner(TEST_KEY)
    message = '{"method":"generateToken","params":{"timestamp":1700000000000}}'

    signature = await signer.sign_message(message)

    assert isinstance(signature, bytes)
    assert len(signature) == 65
    assert Account.recover_message(encode_defunct(text=message), signature=signature) == TEST_ADDRESS

def test_missing_key_is_rejected():
    with pytest.raises(ValueError, match="not provided"):
        EthereumSigner("")

def test_malformed_key_is_rejected_without_echoing_it():
    with pytest.raises(ValueError) as excinfo:
        EthereumSigner("0x1234")
    assert "1234" not in str(excinfo.value)
