from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from telegram.helpers import escape_markdown

from copperx_bot.utils.chains import format_network_name, get_chain_id

RAW_AMOUNT_DECIMALS = 8

PURPOSE_CODES = {
    "self": "Personal Use",
    "salary": "Salary Payment",
    "gift": "Gift",
    "income": "Income",
    "saving": "Savings",
    "education_support": "Education Support",
    "family": "Family Support",
    "home_improvement": "Home Improvement",
    "reimbursement": "Reimbursement",
}

TRANSFER_TYPES = {
    "send": ("📤", "Send"),
    "receive": ("📥", "Receive"),
    "withdraw": ("💸", "Withdrawal"),
    "deposit": ("💰", "Deposit"),
    "bridge": ("🌉", "Bridge"),
    "bank_deposit": ("🏦", "Bank Deposit"),
}

TRANSFER_STATUSES = {
    "pending": ("⏳", "Pending"),
    "initiated": ("🔄", "Initiated"),
    "processing": ("⚙️", "Processing"),
    "success": ("✅", "Completed"),
    "canceled": ("❌", "Canceled"),
    "failed": ("⛔", "Failed"),
    "refunded": ("↩️", "Refunded"),
}

KYC_STATUSES = {
    "approved": ("✅", "Approved"),
    "pending": ("⏳", "Pending"),
    "initiated": ("🔄", "Initiated"),
    "inprogress": ("⚙️", "In Progress"),
    "review_pending": ("🔍", "Under Review"),
    "rejected": ("❌", "Rejected"),
    "expired": ("⌛", "Expired"),
}


def md(text) -> str:
    """Escape user or API supplied text for Telegram Markdown"""
    return escape_markdown(str(text), version=1)


def _decimal(amount) -> Optional[Decimal]:
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        return None
    return value if value.is_finite() else None


def to_raw_amount(amount, decimals: int = RAW_AMOUNT_DECIMALS) -> str:
    """Convert a display amount to the API's integer base units"""
    value = _decimal(amount)
    if value is None:
        return "0"
    return str(int((value * (Decimal(10) ** decimals)).to_integral_value()))


def from_raw_amount(amount, decimals: int = RAW_AMOUNT_DECIMALS) -> Decimal:
    value = _decimal(amount)
    if value is None:
        return Decimal(0)
    return value / (Decimal(10) ** decimals)


def format_amount(amount, decimals: int = 6) -> str:
    """Thousands separators, at least 2 and at most `decimals` places"""
    value = _decimal(amount)
    if value is None:
        return "0.00"
    whole, _, fraction = f"{value:,.{decimals}f}".partition(".")
    fraction = fraction.rstrip("0").ljust(2, "0")
    return f"{whole}.{fraction}"


def format_wallet_address(address: str) -> str:
    if not address:
        return ""
    if len(address) <= 16:
        return address
    return f"{address[:8]}...{address[-8:]}"


def format_date(value) -> str:
    if not value:
        return ""
    try:
        date = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return str(value)
    return date.strftime("%b %d, %Y")


def format_purpose_code(code: str) -> str:
    return PURPOSE_CODES.get(code, (code or "").replace("_", " ").title())


def format_transfer_status(status: str) -> str:
    emoji, label = TRANSFER_STATUSES.get(status, ("❓", (status or "unknown").capitalize()))
    return f"{emoji} {label}"


def _transfer_type(transfer_type: str):
    return TRANSFER_TYPES.get(transfer_type, ("🔄", (transfer_type or "transfer").capitalize()))


def _destination(account: Optional[Dict]) -> str:
    if not account:
        return ""
    if account.get("payeeEmail"):
        return f"to {md(account['payeeEmail'])}"
    if account.get("walletAddress"):
        return f"to wallet {format_wallet_address(account['walletAddress'])}"
    if account.get("bankName"):
        return f"to bank account ({md(account['bankName'])})"
    return ""


def format_transfer(transfer: Dict) -> str:
    """Detailed view of a single transfer"""
    emoji, type_label = _transfer_type(transfer.get("type"))
    currency = transfer.get("currency") or "USDC"
    amount = format_amount(from_raw_amount(transfer.get("amount")))

    lines = [
        f"{emoji} *Transfer: {type_label}*",
        f"ID: `{transfer.get('id')}`",
        f"Status: {format_transfer_status(transfer.get('status'))}",
        f"Amount: {amount} {currency}",
    ]

    if transfer.get("totalFee"):
        fee_currency = transfer.get("feeCurrency") or currency
        lines.append(f"Fee: {format_amount(from_raw_amount(transfer['totalFee']))} {fee_currency}")
    else:
        lines.append("No fee")

    lines.append(f"Date: {format_date(transfer.get('createdAt'))}")

    destination = transfer.get("destinationAccount") or {}
    if destination.get("network") and destination.get("walletAddress"):
        network = format_network_name(destination["network"])
        lines.append(f"To: {network} - {format_wallet_address(destination['walletAddress'])}")
    elif _destination(destination):
        lines.append("To" + _destination(destination)[2:])

    if transfer.get("purposeCode"):
        lines.append(f"Purpose: {format_purpose_code(transfer['purposeCode'])}")

    return "\n".join(lines)


def format_transfer_list(transfers: List[Dict], offset: int = 0) -> str:
    if not transfers:
        return "No transfers found."

    entries = []
    for index, transfer in enumerate(transfers, start=offset + 1):
        emoji, type_label = _transfer_type(transfer.get("type"))
        status_emoji = TRANSFER_STATUSES.get(transfer.get("status"), ("❓", ""))[0]
        amount = format_amount(from_raw_amount(transfer.get("amount")))
        currency = transfer.get("currency") or "USDC"
        summary = f"{status_emoji} {amount} {currency} {_destination(transfer.get('destinationAccount'))}"
        entries.append("\n".join([
            f"{index}. {emoji} {type_label} ({format_date(transfer.get('createdAt'))})",
            f"   {summary.rstrip()}",
            f"   ID: `{transfer.get('id')}`",
        ]))
    return "\n\n".join(entries)


def format_wallet(wallet: Dict) -> str:
    default = " ✓ Default" if wallet.get("isDefault") else ""
    lines = [f"🔹 *{format_network_name(wallet.get('network'))}*{default}"]
    if wallet.get("walletAddress"):
        lines.append(f"Address: `{wallet['walletAddress']}`")
    lines.append(f"ID: `{wallet.get('id')}`")
    return "\n".join(lines)


def format_balance(balance: Dict) -> str:
    if not balance:
        return "N/A"
    return f"{format_amount(balance.get('balance'), balance.get('decimals') or 6)} {balance.get('symbol', 'USDC')}"


def mask_account_number(number: Optional[str]) -> str:
    if not number:
        return "Not specified"
    return f"XXXX-XXXX-{number[-4:]}"


def format_bank_account(account: Dict) -> str:
    bank = account.get("bankAccount")
    if not bank:
        return "No bank account information available."
    account_type = (bank.get("bankAccountType") or "").capitalize() or "Not specified"
    return (
        f"🏦 *{md(bank.get('bankName') or 'Bank Account')}*\n"
        f"Account: {mask_account_number(bank.get('bankAccountNumber'))}\n"
        f"Type: {account_type}"
    )


def format_payee_name(payee: Dict) -> str:
    full_name = " ".join(filter(None, [payee.get("firstName"), payee.get("lastName")]))
    return payee.get("displayName") or payee.get("nickName") or full_name or payee.get("email", "")


def format_payee_list(payees: List[Dict], offset: int = 0) -> str:
    if not payees:
        return "You don't have any saved recipients yet."

    entries = []
    for index, payee in enumerate(payees, start=offset + 1):
        entry = f"{index}. *{md(format_payee_name(payee))}*\n   📧 {md(payee.get('email', ''))}"
        full_name = " ".join(filter(None, [payee.get("firstName"), payee.get("lastName")]))
        if full_name:
            entry += f"\n   👤 {md(full_name)}"
        entry += f"\n   ID: `{payee.get('id')}`"
        entries.append(entry)
    return "\n\n".join(entries)


def format_quote(quote: Dict, amount, currency: str = "USD") -> str:
    lines = [
        "💱 *Withdrawal Quote*",
        "",
        f"Amount: {format_amount(amount)} {currency}",
    ]
    if quote.get("minAmount"):
        lines.append(f"Minimum: {format_amount(from_raw_amount(quote['minAmount']))} {currency}")
    if quote.get("maxAmount"):
        lines.append(f"Maximum: {format_amount(from_raw_amount(quote['maxAmount']))} {currency}")
    if quote.get("arrivalTimeMessage"):
        lines.append(f"Arrival: {md(quote['arrivalTimeMessage'])}")
    provider = quote.get("provider") or {}
    if provider.get("providerCode"):
        lines.append(f"Provider: {md(provider['providerCode'])}")
    return "\n".join(lines)


def format_kyc_status(status: Optional[str]) -> str:
    if not status:
        return "❓ Not started"
    emoji, label = KYC_STATUSES.get(status.lower(), ("❓", status.replace("_", " ").title()))
    return f"{emoji} {label}"


def format_recipient(recipient: Dict) -> str:
    """One batch recipient, e.g. `alice@example.com (10.00 USDC)`"""
    if recipient.get("type") == "payee":
        label = recipient.get("payee_name") or recipient.get("value")
    elif recipient.get("type") == "wallet":
        label = format_wallet_address(recipient.get("value", ""))
    else:
        label = recipient.get("value", "")
    return f"{md(label)} ({format_amount(recipient.get('amount'))} USDC)"


def format_deposit_notification(event: Dict) -> str:
    """Message for a `deposit` event pushed on an organization channel"""
    amount = event.get("amount", "0")
    currency = event.get("currency") or "USDC"
    metadata = event.get("metadata") or {}
    network = metadata.get("network")
    chain_id = get_chain_id(network)

    text = f"💰 *{md(event.get('title') or 'Deposit Received')}*\n\n"
    text += f"You've received a deposit of *{md(amount)} {md(currency)}*"
    if network:
        text += f" on {format_network_name(chain_id) if chain_id else md(network)}"
    text += ".\n\n"
    if metadata.get("txHash"):
        text += f"*Transaction Hash:* `{metadata['txHash']}`\n"
    text += f"*Transaction Time:* {format_date(event.get('timestamp')) or 'just now'}\n"

    message = event.get("message")
    if message and message != f"Received deposit of {amount} {currency}":
        text += f"\n*Note:* {md(message)}\n"
    return text.rstrip()
