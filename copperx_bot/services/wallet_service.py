from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from copperx_bot.services.base import BaseService


class WalletService(BaseService):

    async def get_wallets(self, token: str) -> Optional[List[Dict]]:
        return self._items(await self._safe("retrieve wallets", self.api.get("/wallets", token=token)))

    async def get_default_wallet(self, token: str) -> Optional[Dict]:
        return await self._safe("retrieve default wallet", self.api.get("/wallets/default", token=token))

    async def set_default_wallet(self, token: str, wallet_id: str) -> Optional[Dict]:
        return await self._safe(
            "set default wallet",
            self.api.post("/wallets/default", token=token, data={"walletId": wallet_id}),
        )

    async def create_wallet(self, token: str, network: str) -> Optional[Dict]:
        return await self._safe(
            "create wallet",
            self.api.post("/wallets", token=token, data={"network": network}),
        )

    async def get_balances(self, token: str) -> Optional[List[Dict]]:
        """Balances grouped per wallet"""
        return self._items(await self._safe("retrieve wallet balances", self.api.get("/wallets/balances", token=token)))

    async def get_supported_networks(self, token: str) -> Optional[List[str]]:
        return self._items(await self._safe("retrieve supported networks", self.api.get("/wallets/networks", token=token)))

    async def get_default_balance(self, token: str) -> Optional[Decimal]:
        """USDC balance of the default wallet"""
        response = await self._safe("retrieve balance", self.api.get("/wallets/balance", token=token))
        if not response:
            return None
        try:
            return Decimal(str(response.get("balance", "0")))
        except InvalidOperation:
            return None
