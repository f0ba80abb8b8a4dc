from typing import Dict, List, Optional

from copperx_bot.services.base import BaseService
from copperx_bot.utils.formatters import to_raw_amount

RECIPIENT_FIELDS = {
    "email": "email",
    "wallet": "walletAddress",
    "payee": "payeeId",
}


class TransferService(BaseService):

    def _send_request(self, recipient_type: str, recipient: str, amount, purpose_code: str,
                      currency: str = "USDC") -> Dict:
        field = RECIPIENT_FIELDS.get(recipient_type)
        if field is None:
            raise ValueError(f"Unknown recipient type: {recipient_type}")
        return {
            field: recipient,
            "amount": to_raw_amount(amount),
            "purposeCode": purpose_code,
            "currency": currency,
        }

    async def send(self, token: str, recipient_type: str, recipient: str, amount,
                   purpose_code: str, currency: str = "USDC") -> Optional[Dict]:
        """Send funds to an email, wallet address or saved payee"""
        data = self._send_request(recipient_type, recipient, amount, purpose_code, currency)
        return await self._safe(
            f"send funds to {recipient_type}",
            self.api.post("/transfers/send", token=token, data=data),
        )

    async def withdraw_to_bank(self, token: str, quote_payload: str, quote_signature: str,
                               purpose_code: str) -> Optional[Dict]:
        return await self._safe(
            "withdraw to bank",
            self.api.post("/transfers/offramp", token=token, data={
                "quotePayload": quote_payload,
                "quoteSignature": quote_signature,
                "purposeCode": purpose_code,
            }),
        )

    async def send_batch(self, token: str, recipients: List[Dict], purpose_code: str) -> Optional[List[Dict]]:
        """Submit one batch; the API answers per request.

        `recipients` are dicts with `type`, `value` and `amount`. Returns the
        list of per-request responses in recipient order.
        """
        requests = [
            {
                "requestId": f"transfer-{index + 1}",
                "request": self._send_request(r["type"], r["value"], r["amount"], purpose_code),
            }
            for index, r in enumerate(recipients)
        ]
        response = await self._safe(
            "send batch transfer",
            self.api.post("/transfers/send-batch", token=token, data={"requests": requests}),
        )
        if not response:
            return None
        return response.get("responses") or None

    async def get_transfers(self, token: str, page: int = 1, limit: int = 10) -> Optional[Dict]:
        return await self._safe(
            "retrieve transfer history",
            self.api.get("/transfers", token=token, params={"page": page, "limit": limit}),
        )

    async def get_transfer(self, token: str, transfer_id: str) -> Optional[Dict]:
        return await self._safe("retrieve transfer", self.api.get(f"/transfers/{transfer_id}", token=token))
