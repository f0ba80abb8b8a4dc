from typing import Dict, Optional

from copperx_bot.services.base import BaseService
from copperx_bot.utils.formatters import to_raw_amount


class QuoteService(BaseService):

    async def get_offramp_quote(self, token: str, amount, bank_account_id: str,
                                currency: str = "USD", country: str = "usa") -> Optional[Dict]:
        """Quote a bank withdrawal.

        A quote can come back with an `error` field instead of a payload;
        callers show that message as-is.
        """
        return await self._safe(
            "get offramp quote",
            self.api.post("/quotes/offramp", token=token, data={
                "sourceCountry": country,
                "destinationCountry": country,
                "amount": to_raw_amount(amount),
                "currency": currency,
                "preferredBankAccountId": bank_account_id,
            }),
        )
