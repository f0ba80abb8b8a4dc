from typing import Dict, List, Optional

from copperx_bot.services.base import BaseService


class KycService(BaseService):

    async def get_kycs(self, token: str) -> Optional[List[Dict]]:
        return self._items(await self._safe(
            "retrieve KYC records",
            self.api.get("/kycs", token=token, params={"page": 1, "limit": 10}),
        ))

    async def get_latest_kyc(self, token: str) -> Optional[Dict]:
        """Most recent KYC record, {} when the user never started KYC"""
        kycs = await self.get_kycs(token)
        if kycs is None:
            return None
        return kycs[0] if kycs else {}
