import re
from decimal import Decimal, InvalidOperation
from typing import Optional

import base58
from eth_utils import is_checksum_address

from copperx_bot.utils.chains import CHAIN_INFO, is_evm_chain, is_solana_chain
from copperx_bot.utils.logger import logger

MAX_AMOUNT_DECIMALS = 6

EMAIL_PATTERN = re.compile(
    r'^(([^<>()\[\]\\.,;:\s@"]+(\.[^<>()\[\]\\.,;:\s@"]+)*)|(".+"))@'
    r'((\[[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}\.[0-9]{1,3}])|(([a-zA-Z\-0-9]+\.)+[a-zA-Z]{2,}))$'
)
ETHEREUM_PATTERN = re.compile(r'^0x[a-fA-F0-9]{40}$')
SOLANA_PATTERN = re.compile(r'^[1-9A-HJ-NP-Za-km-z]{32,44}$')
BITCOIN_LEGACY_PATTERN = re.compile(r'^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$')
BITCOIN_SEGWIT_PATTERN = re.compile(r'^bc1[a-zA-HJ-NP-Z0-9]{25,}$')
POLKADOT_PATTERNS = (
    re.compile(r'^[1-9A-HJ-NP-Za-km-z]{45,48}$'),
    re.compile(r'^[A-Za-z0-9]{45,48}$'),
)
OTP_PATTERN = re.compile(r'^\d{4,8}$')
ROUTING_NUMBER_PATTERN = re.compile(r'^\d{9}$')
ACCOUNT_NUMBER_PATTERN = re.compile(r'^\d{4,17}$')
SWIFT_PATTERN = re.compile(r'^[A-Za-z]{6}[A-Za-z0-9]{2}([A-Za-z0-9]{3})?$')
UNSAFE_PATTERNS = (
    re.compile(r'<\s*script', re.IGNORECASE),
    re.compile(r'<\s*iframe', re.IGNORECASE),
    re.compile(r'javascript\s*:', re.IGNORECASE),
    re.compile(r'\bon\w+\s*=', re.IGNORECASE),
    re.compile(r'data\s*:\s*text/html', re.IGNORECASE),
)


def is_valid_email(email: str) -> bool:
    if not email:
        return False
    return EMAIL_PATTERN.match(email.strip()) is not None


def is_valid_ethereum_address(address: str) -> bool:
    """Check an EVM address, verifying the EIP-55 checksum on mixed-case input.

    An address whose checksum cannot be computed is treated as invalid.
    """
    if not address or not ETHEREUM_PATTERN.match(address):
        return False

    body = address[2:]
    if body == body.lower() or body == body.upper():
        return True

    try:
        return is_checksum_address(address)
    except (ImportError, TypeError, ValueError) as e:
        logger.warning(f"Could not verify checksum for {address}: {e}")
        return False


def is_valid_solana_address(address: str) -> bool:
    if not address or not SOLANA_PATTERN.match(address):
        return False
    try:
        return len(base58.b58decode(address)) == 32
    except ValueError:
        return False


def is_valid_bitcoin_address(address: str) -> bool:
    if not address:
        return False
    return bool(BITCOIN_LEGACY_PATTERN.match(address) or BITCOIN_SEGWIT_PATTERN.match(address))


def is_valid_polkadot_address(address: str) -> bool:
    if not address:
        return False
    return any(pattern.match(address) for pattern in POLKADOT_PATTERNS)


def is_valid_wallet_address(address: str, chain_id=None) -> bool:
    """Validate an address for a specific chain, or any supported format"""
    if not address:
        return False
    address = address.strip()

    if chain_id is not None:
        if is_evm_chain(chain_id):
            return is_valid_ethereum_address(address)
        if is_solana_chain(chain_id):
            return is_valid_solana_address(address)

    return (
        is_valid_ethereum_address(address)
        or is_valid_solana_address(address)
        or is_valid_bitcoin_address(address)
        or is_valid_polkadot_address(address)
    )


def parse_amount(amount: str, min_amount=0, max_amount=None) -> Optional[Decimal]:
    """Parse a user-entered amount, returning None when it is not acceptable.

    Amounts must be positive, finite, within the given bounds and carry
    at most six decimal places.
    """
    if amount is None:
        return None
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        return None

    if not value.is_finite() or value <= 0:
        return None
    if value < Decimal(str(min_amount)):
        return None
    if max_amount is not None and value > Decimal(str(max_amount)):
        return None

    exponent = value.as_tuple().exponent
    if exponent < 0 and -exponent > MAX_AMOUNT_DECIMALS:
        return None
    return value


def is_valid_amount(amount: str, min_amount=0, max_amount=None) -> bool:
    return parse_amount(amount, min_amount, max_amount) is not None


def validate_chain_id(chain_id) -> bool:
    try:
        return int(chain_id) in CHAIN_INFO
    except (TypeError, ValueError):
        return False


def is_valid_otp(otp: str) -> bool:
    return bool(otp) and OTP_PATTERN.match(otp.strip()) is not None


def is_valid_routing_number(value: str) -> bool:
    return bool(value) and ROUTING_NUMBER_PATTERN.match(value.strip()) is not None


def is_valid_account_number(value: str) -> bool:
    return bool(value) and ACCOUNT_NUMBER_PATTERN.match(value.strip()) is not None


def is_safe_input(text: str) -> bool:
    """Reject text that looks like script or markup injection"""
    if not text:
        return True
    return not any(pattern.search(text) for pattern in UNSAFE_PATTERNS)


def is_valid_swift_code(value: str) -> bool:
    return bool(value) and SWIFT_PATTERN.match(value.strip()) is not None
