# Commands and callback actions that need a logged-in user

PROTECTED_COMMANDS = frozenset([
    "logout",
    "profile",
    "wallet",
    "deposit",
    "send",
    "kyc",
    "withdraw",
    "payees",
    "history",
    "notifications",
])

PROTECTED_ACTIONS = frozenset([
    "view_wallets",
    "wallet_details",
    "set_default_wallet",
    "create_wallet",
    "send_funds",
    "send_single",
    "bulk_send",
    "withdraw_funds",
    "deposit_funds",
    "deposit_done",
    "history",
    "transaction_details",
    "kyc_status",
    "profile",
    "list_payees",
    "add_payee",
    "edit_payee",
    "delete_payee",
    "save_payee",
    "logout",
    "notifications",
    "notifications_on",
    "notifications_off",
    "test_notification",
])


def is_protected_command(command: str) -> bool:
    return command in PROTECTED_COMMANDS


def is_protected_action(action: str) -> bool:
    """Match on the action name, ignoring any `:param` suffix"""
    return action.split(":", 1)[0] in PROTECTED_ACTIONS
