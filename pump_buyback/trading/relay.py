# pump_buyback/trading/relay.py
"""
Trade-relay (PumpPortal trade-local) and pump.fun fee estimate HTTP client.
"""
from typing import Any, Dict, Optional

import httpx

from pump_buyback.core.exceptions import RelayError
from pump_buyback.utils.logger import get_logger

logger = get_logger(__name__)

TRADE_TIMEOUT = 30.0  # seconds
FEE_ESTIMATE_TIMEOUT = 10.0
UNKNOWN_CLAIMABLE = -1
POOL = "pump"

FEE_API_HEADERS = {
    "Accept": "application/json",
    "User-Agent": "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36",
}


def is_no_fees_message(text: str) -> bool:
    return "no fees" in text.lower()


class PumpPortalClient:
    """Asks the relay to build unsigned transactions; signing stays local."""

    def __init__(
            self,
            trade_url: str,
            fee_api_url: str,
            http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.trade_url = trade_url
        self.fee_api_url = fee_api_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient()

    async def close(self) -> None:
        await self._client.aclose()

    async def _post_trade(self, body: Dict[str, Any]) -> bytes:
        action = body.get("action")
        try:
            response = await self._client.post(
                self.trade_url,
                json=body,
                headers={"Content-Type": "application/json"},
                timeout=TRADE_TIMEOUT,
            )
        except httpx.HTTPError as e:
            logger.error(f"PumpPortal request for '{action}' failed: {e}")
            raise RelayError(f"PumpPortal request for '{action}' failed", payload=str(e)) from e

        if response.status_code != 200:
            error_text = response.text
            raise RelayError(
                f"PumpPortal API error for '{action}' (HTTP {response.status_code})",
                payload=error_text,
                status_code=response.status_code,
            )
        if not response.content:
            raise RelayError(f"PumpPortal returned an empty transaction for '{action}'")
        return response.content

    async def build_claim_transaction(self, public_key: str, priority_fee: float) -> Optional[bytes]:
        """Unsigned creator-fee claim transaction, or None when the relay says there are no fees."""
        body = {
            "publicKey": public_key,
            "action": "collectCreatorFee",
            "pool": POOL,
            "priorityFee": priority_fee,
        }
        try:
            return await self._post_trade(body)
        except RelayError as e:
            if isinstance(e.payload, str) and is_no_fees_message(e.payload):
                logger.info("No fees available to claim")
                return None
            logger.error(f"PumpPortal API error: {e.payload}")
            raise

    async def build_buy_transaction(
            self,
            public_key: str,
            mint: str,
            amount_sol: float,
            slippage_bps: int,
            priority_fee: float,
    ) -> bytes:
        body = {
            "publicKey": public_key,
            "action": "buy",
            "mint": mint,
            "amount": amount_sol,
            "denominatedInSol": "true",
            "slippage": slippage_bps / 100,  # relay takes percent
            "priorityFee": priority_fee,
            "pool": POOL,
        }
        return await self._post_trade(body)

    async def get_claimable_lamports(self, wallet_address: str) -> int:
        """Best-effort claimable fee estimate. Returns -1 when unknown; never raises for HTTP trouble."""
        url = f"{self.fee_api_url}/creators/{wallet_address}/fees"
        try:
            response = await self._client.get(url, headers=FEE_API_HEADERS, timeout=FEE_ESTIMATE_TIMEOUT)
            if response.status_code != 200:
                logger.debug(f"Fee check API returned HTTP {response.status_code}, will attempt claim")
                return UNKNOWN_CLAIMABLE
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.debug(f"Fee check API not available ({e}), will attempt claim")
            return UNKNOWN_CLAIMABLE

        claimable = data.get("claimable") if isinstance(data, dict) else None
        if isinstance(claimable, (int, float)) and not isinstance(claimable, bool) and claimable >= 0:
            return int(claimable)
        logger.debug("Could not read claimable fees from API response, will attempt claim")
        return UNKNOWN_CLAIMABLE
