import aiohttp
import asyncio
import time
import random
from typing import List, Dict, Any, Union, Optional

from utils.logger_utils import get_logger
from utils.rpc_utils import rpc_response_to_result
from voting.exceptions import RetriableRpcError, RpcError

logger = get_logger("Rpc Client")


class RpcClient(object):
    """
    JSON-RPC client with provider failover.
    Uses a persistent ClientSession for Connection Pooling.
    Every request is bounded: total timeout per request, max_retries rounds over all providers,
    exponential backoff between rounds and adaptive slow-down on HTTP 429.
    """
    def __init__(self, rpc_url: Union[str, List[str]], max_retries: int = 5, timeout: int = 60, rpc_min_interval: float = 0.15):
        if isinstance(rpc_url, str):
            self.rpc_urls = [url.strip() for url in rpc_url.split(",") if url.strip()]
        else:
            self.rpc_urls = list(rpc_url)

        if not self.rpc_urls:
            raise ValueError("At least one RPC URL must be provided.")

        self.id_counter = 0
        self.max_retries = max_retries
        # Total timeout for the request (connect + read)
        self.timeout = aiohttp.ClientTimeout(total=timeout)

        self._session: Optional[aiohttp.ClientSession] = None

        self._last_request_time = 0.0
        self._min_interval = rpc_min_interval

    async def __aenter__(self) -> "RpcClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _get_session(self) -> aiohttp.ClientSession:
        """Lazy loads or returns the existing session."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=100, force_close=False)
            self._session = aiohttp.ClientSession(connector=connector, timeout=self.timeout)
        return self._session

    async def close(self):
        """Closes the underlying session."""
        if self._session and not self._session.closed:
            await self._session.close()

    def _generate_id(self) -> int:
        self.id_counter += 1
        return self.id_counter

    async def _enforce_rate_limit(self):
        """Ensures a minimum interval between requests to avoid bursting."""
        elapsed = time.time() - self._last_request_time
        if elapsed < self._min_interval:
            await asyncio.sleep(self._min_interval - elapsed)
        self._last_request_time = time.time()

    async def _handle_429_backoff(self, url: str, attempt: int, method_name: str = "request"):
        """
        Adaptive handling for 429 Too Many Requests.
        1. Increases the rate limit interval (slows down the client permanently).
        2. Sleeps with exponential backoff + jitter.
        """
        previous_interval = self._min_interval
        self._min_interval = min(max(self._min_interval, 0.05) * 1.5, 2.0)

        if self._min_interval > previous_interval:
            logger.warning(f"RPC 429 Rate Limit at {url}. Increasing per-request delay from {previous_interval:.2f}s to {self._min_interval:.2f}s")

        # 1s, 2s, 4s, 8s, 16s... + random(0, 1s)
        backoff_time = (2 ** (attempt - 1)) + random.uniform(0, 1)
        logger.warning(f"RPC 429 at {url} for {method_name}. Backing off for {backoff_time:.2f}s...")
        await asyncio.sleep(backoff_time)

    def _build_payload(self, method: str, params: List[Any]) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "method": method,
            "params": params,
            "id": self._generate_id()
        }

    async def get_code(self, address: str, block: str = "latest") -> str:
        payload = self._build_payload("eth_getCode", [address, block])
        return await self._make_request("eth_getCode", payload)

    async def eth_call(self, to: str, data: str, block: str = "latest") -> str:
        payload = self._build_payload("eth_call", [{"to": to, "data": data}, block])
        return await self._make_request("eth_call", payload)

    async def _make_request(self, method_name: str, payload: Dict[str, Any]) -> Any:
        """
        Sends one JSON-RPC request, failing over between providers.

        Raises:
            RpcError: On a definitive JSON-RPC error (e.g. execution reverted), or when
                every provider failed for max_retries rounds.
        """
        session = await self._get_session()
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_retries + 1):
            for url in self.rpc_urls:
                try:
                    await self._enforce_rate_limit()
                    async with session.post(url, json=payload) as response:
                        if response.status == 200:
                            data = await response.json()
                            return rpc_response_to_result(data)
                        elif response.status == 429:
                            await self._handle_429_backoff(url, attempt, method_name)
                        else:
                            last_error = RpcError(f"HTTP {response.status}")
                            logger.error(f"RPC HTTP Error {response.status} ({method_name}) at {url}. Trying next provider...")
                except RetriableRpcError as e:
                    last_error = e
                    logger.warning(f"Retriable RPC error in {method_name} at {url}: {e}")
                except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                    last_error = e
                    logger.warning(f"Network error in {method_name} at {url}: {e!r}")
                except ValueError as e:
                    last_error = RetriableRpcError(f"malformed JSON body: {e}")
                    logger.warning(f"Malformed response in {method_name} at {url}. Trying next provider...")

            if attempt < self.max_retries:
                wait_time = (2 ** attempt) + random.uniform(0, 1)
                logger.warning(f"All providers failed for {method_name} (Attempt {attempt}). Retrying in {wait_time:.2f}s...")
                await asyncio.sleep(wait_time)

        logger.critical(f"FAILED {method_name} on all providers after {self.max_retries} attempts.")
        raise RpcError(f"{method_name} failed after {self.max_retries} attempts: {last_error!r}")
