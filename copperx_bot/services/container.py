import time
from dataclasses import dataclass
from typing import Callable

from copperx_bot.config.config import Settings
from copperx_bot.services.account_service import AccountService
from copperx_bot.services.api_service import ApiClient
from copperx_bot.services.auth_service import AuthService
from copperx_bot.services.kyc_service import KycService
from copperx_bot.services.notification_service import NotificationService
from copperx_bot.services.payee_service import PayeeService
from copperx_bot.services.quote_service import QuoteService
from copperx_bot.services.rate_limiter import RateLimiter
from copperx_bot.services.transfer_service import TransferService
from copperx_bot.services.wallet_service import WalletService
from copperx_bot.utils.encryption import TokenCipher


@dataclass
class Services:
    """Every service the handlers and scenes depend on"""
    api: ApiClient
    auth: AuthService
    wallets: WalletService
    transfers: TransferService
    payees: PayeeService
    accounts: AccountService
    quotes: QuoteService
    kyc: KycService
    notifications: NotificationService
    rate_limiter: RateLimiter


def build_services(settings: Settings, clock: Callable[[], float] = time.time) -> Services:
    api = ApiClient(base_url=settings.api_base_url, timeout=settings.api_timeout)
    return Services(
        api=api,
        auth=AuthService(api, TokenCipher(settings.app_key), clock=clock),
        wallets=WalletService(api),
        transfers=TransferService(api),
        payees=PayeeService(api),
        accounts=AccountService(api),
        quotes=QuoteService(api),
        kyc=KycService(api),
        notifications=NotificationService(api, key=settings.pusher_key, cluster=settings.pusher_cluster),
        rate_limiter=RateLimiter(clock=clock),
    )
