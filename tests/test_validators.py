"""
Unit Tests: input validators
"""

from decimal import Decimal

import pytest

from copperx_bot.utils import validators
from copperx_bot.utils.validators import (
    is_safe_input,
    is_valid_account_number,
    is_valid_amount,
    is_valid_bitcoin_address,
    is_valid_email,
    is_valid_ethereum_address,
    is_valid_otp,
    is_valid_polkadot_address,
    is_valid_routing_number,
    is_valid_solana_address,
    is_valid_swift_code,
    is_valid_wallet_address,
    parse_amount,
    validate_chain_id,
)

CHECKSUMMED = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
SOLANA = "So11111111111111111111111111111111111111112"
BITCOIN = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
POLKADOT = "15oF4uVJwmo4TdGW7VfQxNLavjCXviqxT9S1MgbjMNHr6Sp5"


# ============================================================================
# EMAIL
# ============================================================================

@pytest.mark.parametrize("email", ["user@example.com", "first.last@sub.example.co", "  user@example.com  "])
def test_valid_emails(email):
    assert is_valid_email(email)


@pytest.mark.parametrize("email", ["user@", "@example.com", "user example.com", "", None, "user@example"])
def test_invalid_emails(email):
    assert not is_valid_email(email)


# ============================================================================
# WALLET ADDRESSES
# ============================================================================

def test_ethereum_lowercase_and_uppercase_bodies_are_valid():
    assert is_valid_ethereum_address(CHECKSUMMED.lower())
    assert is_valid_ethereum_address("0x" + CHECKSUMMED[2:].upper())


def test_ethereum_checksum_is_verified_for_mixed_case():
    assert is_valid_ethereum_address(CHECKSUMMED)
    assert not is_valid_ethereum_address(CHECKSUMMED[:-1] + "D")


@pytest.mark.parametrize("address", ["0x123", "5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed", "0x" + "g" * 40, ""])
def test_ethereum_rejects_malformed(address):
    assert not is_valid_ethereum_address(address)


def test_ethereum_checksum_failure_is_invalid(monkeypatch):
    def broken(address):
        raise ValueError("no keccak backend")

    monkeypatch.setattr(validators, "is_checksum_address", broken)

    assert not is_valid_ethereum_address(CHECKSUMMED)


def test_solana():
    assert is_valid_solana_address(SOLANA)
    assert is_valid_solana_address("11111111111111111111111111111111")
    assert not is_valid_solana_address("0OIl" * 10)
    assert not is_valid_solana_address("abc")


def test_bitcoin_and_polkadot():
    assert is_valid_bitcoin_address(BITCOIN)
    assert is_valid_bitcoin_address("bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq")
    assert not is_valid_bitcoin_address("2A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa")
    assert is_valid_polkadot_address(POLKADOT)
    assert not is_valid_polkadot_address("short")


def test_wallet_address_by_chain():
    assert is_valid_wallet_address(CHECKSUMMED, chain_id=137)
    assert not is_valid_wallet_address(SOLANA, chain_id=137)
    assert is_valid_wallet_address(SOLANA, chain_id=1399811149)
    assert not is_valid_wallet_address(CHECKSUMMED, chain_id=1399811149)


def test_wallet_address_any_format_without_chain():
    for address in (CHECKSUMMED, SOLANA, BITCOIN, POLKADOT, f"  {CHECKSUMMED}  "):
        assert is_valid_wallet_address(address)
    assert not is_valid_wallet_address("not-an-address")
    assert not is_valid_wallet_address("")


# ============================================================================
# AMOUNTS
# ============================================================================

@pytest.mark.parametrize("amount", ["10.5", "1", "0.000001", " 25 "])
def test_valid_amounts(amount):
    assert is_valid_amount(amount)


@pytest.mark.parametrize("amount", ["-5", "0", "abc", "1.2345678", "NaN", "Infinity", "", None])
def test_invalid_amounts(amount):
    assert not is_valid_amount(amount)


def test_amount_bounds():
    assert not is_valid_amount("0.5", min_amount=1)
    assert is_valid_amount("1", min_amount=1)
    assert is_valid_amount("100", max_amount=100)
    assert not is_valid_amount("100.01", max_amount=100)


def test_parse_amount_returns_decimal():
    assert parse_amount("12.25") == Decimal("12.25")
    assert parse_amount("nope") is None


# ============================================================================
# OTHER FIELDS
# ============================================================================

def test_chain_ids():
    assert validate_chain_id(1)
    assert validate_chain_id("8453")
    assert not validate_chain_id(999999)
    assert not validate_chain_id("abc")
    assert not validate_chain_id(None)


def test_bank_fields():
    assert is_valid_otp("123456")
    assert not is_valid_otp("12ab56")
    assert not is_valid_otp("123")
    assert is_valid_routing_number("021000021")
    assert not is_valid_routing_number("02100002")
    assert is_valid_account_number("1234")
    assert is_valid_account_number("12345678901234567")
    assert not is_valid_account_number("123")
    assert not is_valid_account_number("123456789012345678")
    assert is_valid_swift_code("CHASUS33")
    assert is_valid_swift_code("DEUTDEFF500")
    assert not is_valid_swift_code("CHAS")


@pytest.mark.parametrize("text", ["<script>alert(1)</script>", "javascript:void(0)", "<img onerror=x>", "<IFRAME src=x>"])
def test_unsafe_input(text):
    assert not is_safe_input(text)


def test_safe_input():
    assert is_safe_input("Alice Smith")
    assert is_safe_input("")
