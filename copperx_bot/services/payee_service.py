from typing import Dict, Optional

from copperx_bot.services.base import BaseService


class PayeeService(BaseService):

    async def get_payees(self, token: str, page: int = 1, limit: int = 10) -> Optional[Dict]:
        """One page of saved payees: {"data": [...], "hasMore": bool, ...}"""
        response = await self._safe(
            "retrieve payees",
            self.api.get("/payees", token=token, params={"page": page, "limit": limit}),
        )
        if isinstance(response, list):
            return {"data": response, "hasMore": False}
        return response

    async def get_payee(self, token: str, payee_id: str) -> Optional[Dict]:
        return await self._safe("retrieve payee", self.api.get(f"/payees/{payee_id}", token=token))

    async def create_payee(self, token: str, email: str, nickname: str,
                           first_name: Optional[str] = None, last_name: Optional[str] = None) -> Optional[Dict]:
        data = {"email": email, "nickName": nickname}
        if first_name:
            data["firstName"] = first_name
        if last_name:
            data["lastName"] = last_name
        return await self._safe("create payee", self.api.post("/payees", token=token, data=data))

    async def delete_payee(self, token: str, payee_id: str) -> bool:
        response = await self._safe("delete payee", self.api.delete(f"/payees/{payee_id}", token=token))
        return response is not None
