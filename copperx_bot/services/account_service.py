from typing import Dict, List, Optional

from copperx_bot.services.base import BaseService


class AccountService(BaseService):
    """Bank accounts used as withdrawal destinations"""

    async def get_bank_accounts(self, token: str) -> Optional[List[Dict]]:
        accounts = self._items(await self._safe("retrieve accounts", self.api.get("/accounts", token=token)))
        if accounts is None:
            return None
        return [account for account in accounts if account.get("type") == "bank_account"]

    async def get_providers(self, token: str) -> Optional[List[Dict]]:
        return self._items(await self._safe(
            "retrieve providers",
            self.api.get("/providers", token=token, params={"page": 1, "limit": 20}),
        ))

    async def create_bank_account(self, token: str, provider_id: str, bank_account: Dict,
                                  country: str = "usa") -> Optional[Dict]:
        data = {
            "country": country,
            "network": "",
            "walletAddress": "",
            "isDefault": False,
            "providerId": provider_id,
            "bankAccount": {"method": "bank_wire", **bank_account},
        }
        return await self._safe("create bank account", self.api.post("/accounts", token=token, data=data))
