import asyncio
import json
from typing import Any, Dict, List, Optional

import aiohttp

from utils.logger_utils import get_logger
from voting.exceptions import AbiLookupError, RateLimitedError

logger = get_logger("Etherscan Client")

DEFAULT_ETHERSCAN_API_URL = "https://api.etherscan.io/v2/api"

# "result" messages returned with status "0"
NOT_VERIFIED_MESSAGE = "contract source code not verified"
RATE_LIMIT_MARKER = "rate limit"


class EtherscanClient(object):
    """
    ABI source backed by the Etherscan contract API (module=contract&action=getabi).

    A verified contract answers with its JSON ABI. An unverified one is reported as
    not found (None). Rate limit answers raise RateLimitedError so callers can retry,
    any other error answer raises AbiLookupError.
    """

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = DEFAULT_ETHERSCAN_API_URL,
        chain_id: int = 1,
        timeout: int = 30,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.chain_id = chain_id
        self.timeout = aiohttp.ClientTimeout(total=timeout)
        self.session: Optional[aiohttp.ClientSession] = None

    async def __aenter__(self):
        """Context manager entry"""
        connector = aiohttp.TCPConnector(limit=20, force_close=False)
        self.session = aiohttp.ClientSession(connector=connector, timeout=self.timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit"""
        if self.session:
            await self.session.close()

    async def _request(self, address: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if self.session is None:
            raise RuntimeError("EtherscanClient must be used as an async context manager")

        query = {"chainid": self.chain_id, **params}
        if self.api_key:
            query["apikey"] = self.api_key

        try:
            async with self.session.get(self.base_url, params=query) as response:
                if response.status == 429:
                    raise RateLimitedError(f"HTTP 429 from Etherscan for {address}")
                if response.status != 200:
                    raise AbiLookupError(address, f"HTTP {response.status} {response.reason}")
                try:
                    return await response.json(content_type=None)
                except ValueError as e:
                    # HTML challenge pages come back as 200
                    raise AbiLookupError(address, "malformed response") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise AbiLookupError(address, f"network error: {e!r}") from e

    async def get_interface(self, address: str) -> Optional[List[Dict[str, Any]]]:
        """
        Returns the verified ABI of `address`, or None when the contract is not verified
        (or has no code).

        Raises:
            RateLimitedError: Etherscan rate limit hit.
            AbiLookupError: Any other error answer (invalid address, bad API key, ...).
        """
        data = await self._request(address, {"module": "contract", "action": "getabi", "address": address})
        return self._parse_abi_response(address, data)

    async def get_verification_status(self, address: str) -> bool:
        abi = await self.get_interface(address)
        return abi is not None

    @staticmethod
    def _parse_abi_response(address: str, data: Dict[str, Any]) -> Optional[List[Dict[str, Any]]]:
        status = str(data.get("status"))
        result = data.get("result")

        if status == "1":
            try:
                abi = json.loads(result) if isinstance(result, str) else result
            except json.JSONDecodeError as e:
                raise AbiLookupError(address, f"malformed ABI payload: {e}") from e
            if not isinstance(abi, list):
                raise AbiLookupError(address, "ABI payload is not a list")
            return abi

        message = str(result or data.get("message") or "")
        lowered = message.lower()
        if RATE_LIMIT_MARKER in lowered:
            raise RateLimitedError(f"Etherscan rate limit for {address}: {message}")
        if NOT_VERIFIED_MESSAGE in lowered:
            logger.debug(f"No verified ABI for {address}")
            return None

        raise AbiLookupError(address, message or "unknown error")
