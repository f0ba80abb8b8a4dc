"""
Unit Tests: message formatters
"""

from decimal import Decimal

from copperx_bot.utils.formatters import (
    format_amount,
    format_bank_account,
    format_date,
    format_deposit_notification,
    format_kyc_status,
    format_payee_list,
    format_payee_name,
    format_purpose_code,
    format_quote,
    format_recipient,
    format_transfer,
    format_transfer_list,
    format_transfer_status,
    format_wallet_address,
    from_raw_amount,
    mask_account_number,
    md,
    to_raw_amount,
)


# ============================================================================
# AMOUNTS
# ============================================================================

def test_format_amount():
    assert format_amount("1234.5") == "1,234.50"
    assert format_amount(10) == "10.00"
    assert format_amount("0.123456") == "0.123456"
    assert format_amount("0.1234567") == "0.123457"
    assert format_amount("abc") == "0.00"
    assert format_amount(None) == "0.00"


def test_raw_amount_conversion():
    assert to_raw_amount("10") == "1000000000"
    assert to_raw_amount(Decimal("0.5")) == "50000000"
    assert to_raw_amount("junk") == "0"
    assert from_raw_amount("1000000000") == Decimal("10")
    assert from_raw_amount(None) == Decimal(0)


# ============================================================================
# SIMPLE FIELDS
# ============================================================================

def test_format_wallet_address():
    address = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
    assert format_wallet_address(address) == "0x5aAeb6...Ef1BeAed"
    assert format_wallet_address("short") == "short"
    assert format_wallet_address("") == ""


def test_format_date():
    assert format_date("2024-03-05T10:00:00Z") == "Mar 05, 2024"
    assert format_date("yesterday") == "yesterday"
    assert format_date(None) == ""


def test_labels():
    assert format_purpose_code("self") == "Personal Use"
    assert format_purpose_code("new_code") == "New Code"
    assert format_transfer_status("success") == "✅ Completed"
    assert format_transfer_status("weird") == "❓ Weird"
    assert format_kyc_status("APPROVED") == "✅ Approved"
    assert format_kyc_status(None) == "❓ Not started"


def test_mask_account_number():
    assert mask_account_number("123456789") == "XXXX-XXXX-6789"
    assert mask_account_number(None) == "Not specified"


def test_md_escapes_markdown():
    assert md("a_b*c") == "a\\_b\\*c"


# ============================================================================
# TRANSFERS
# ============================================================================

def test_format_transfer_details():
    text = format_transfer({
        "id": "t-1",
        "type": "send",
        "status": "success",
        "amount": "1050000000",
        "currency": "USDC",
        "totalFee": "10000000",
        "createdAt": "2024-03-05T10:00:00Z",
        "destinationAccount": {"payeeEmail": "bob@example.com"},
        "purposeCode": "gift",
    })

    assert "Send" in text
    assert "Amount: 10.50 USDC" in text
    assert "Fee: 0.10 USDC" in text
    assert "To bob@example.com" in text
    assert "Purpose: Gift" in text


def test_format_transfer_to_wallet_on_network():
    text = format_transfer({
        "id": "t-2",
        "amount": "100000000",
        "destinationAccount": {"network": "137", "walletAddress": "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"},
    })

    assert "To: Polygon - 0x5aAeb6...Ef1BeAed" in text
    assert "No fee" in text


def test_format_transfer_list():
    assert format_transfer_list([]) == "No transfers found."

    text = format_transfer_list([{"id": "a", "type": "deposit", "amount": "200000000"}], offset=5)

    assert text.startswith("6. 💰 Deposit")
    assert "2.00 USDC" in text
    assert "`a`" in text


# ============================================================================
# PAYEES, ACCOUNTS, QUOTES
# ============================================================================

def test_payee_name_prefers_display_then_nickname():
    assert format_payee_name({"displayName": "Bobby", "nickName": "bob"}) == "Bobby"
    assert format_payee_name({"nickName": "bob", "firstName": "Bob"}) == "bob"
    assert format_payee_name({"firstName": "Bob", "lastName": "Stone"}) == "Bob Stone"
    assert format_payee_name({"email": "bob@example.com"}) == "bob@example.com"


def test_format_payee_list():
    assert format_payee_list([]) == "You don't have any saved recipients yet."

    text = format_payee_list([{"id": "p1", "nickName": "bob", "email": "bob@example.com"}])

    assert text.startswith("1. *bob*")
    assert "ID: `p1`" in text


def test_format_bank_account():
    text = format_bank_account({"bankAccount": {
        "bankName": "Chase",
        "bankAccountNumber": "000123456789",
        "bankAccountType": "checking",
    }})

    assert "Chase" in text
    assert "XXXX-XXXX-6789" in text
    assert "Checking" in text
    assert format_bank_account({}) == "No bank account information available."


def test_format_quote():
    text = format_quote({
        "minAmount": "5000000000",
        "arrivalTimeMessage": "1-3 business days",
        "provider": {"providerCode": "0x21"},
    }, "100")

    assert "Amount: 100.00 USD" in text
    assert "Minimum: 50.00 USD" in text
    assert "1-3 business days" in text


def test_format_recipient():
    assert format_recipient({"type": "email", "value": "a@b.co", "amount": "5"}) == "a@b.co (5.00 USDC)"
    assert format_recipient({"type": "payee", "value": "p1", "payee_name": "Bob", "amount": "1"}) == "Bob (1.00 USDC)"
    wallet = format_recipient({
        "type": "wallet", "value": "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed", "amount": "2",
    })
    assert wallet == "0x5aAeb6...Ef1BeAed (2.00 USDC)"


def test_format_deposit_notification():
    text = format_deposit_notification({
        "title": "Deposit Received",
        "message": "Funds from ACME_Corp",
        "amount": "25.5",
        "currency": "USDC",
        "metadata": {"network": "137", "txHash": "0xdef"},
        "timestamp": "2024-03-01T10:00:00Z",
    })

    assert text.startswith("💰 *Deposit Received*")
    assert "*25.5 USDC* on Polygon." in text
    assert "*Transaction Hash:* `0xdef`" in text
    assert "*Transaction Time:* Mar 01, 2024" in text
    assert "*Note:* Funds from ACME\\_Corp" in text


def test_format_deposit_notification_minimal():
    text = format_deposit_notification({"amount": "10"})

    assert "*10 USDC*." in text
    assert "*Transaction Time:* just now" in text
    assert "Transaction Hash" not in text
    assert "Note" not in text
