from typing import Any, Awaitable, Callable, Dict, List, Optional

from async_lru import alru_cache

from utils.formatter_utils import to_normalized_address
from utils.logger_utils import get_logger
from voting.models.call import AddressInfo
from voting.models.contract_interface import ContractInterface
from voting.service.abi_resolver_service import AbiSource

logger = get_logger("Report Memo")

Resolve = Callable[[str], Awaitable[Optional[ContractInterface]]]
Classify = Callable[[str], Awaitable[AddressInfo]]


class _ReportScoped:
    closed = False

    def _caches(self) -> tuple:
        return ()

    def _ensure_open(self) -> None:
        if self.closed:
            raise RuntimeError(f"{type(self).__name__} used after its report was completed")

    async def close(self) -> None:
        self.closed = True
        for cache in self._caches():
            # cancels lookups still in flight
            await cache.cache_close()
            cache.cache_clear()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()


class ReportAbiSource(_ReportScoped):
    """
    ABI source answers memoized for one report.

    Interface resolution and verification status both read the same getabi answer,
    so every address costs a single request to the ABI source per report.
    """

    def __init__(self, abi_source: AbiSource):
        self._get_interface = alru_cache(maxsize=None)(abi_source.get_interface)

    async def get_interface(self, address: str) -> Optional[List[Dict[str, Any]]]:
        self._ensure_open()
        return await self._get_interface(to_normalized_address(address))

    async def get_verification_status(self, address: str) -> bool:
        return await self.get_interface(address) is not None

    def _caches(self) -> tuple:
        return (self._get_interface,)

    async def close(self) -> None:
        logger.debug(f"ABI answer stats: {self._get_interface.cache_info()}")
        await super().close()


class ReportMemo(_ReportScoped):
    """
    Address lookups memoized for the lifetime of one report.

    Each report builds its own memo, so nothing is shared between reports.
    Concurrent lookups of the same address wait on a single pending call;
    failed lookups are not cached.
    """

    def __init__(self, resolve: Resolve, classify: Classify):
        self._resolve = alru_cache(maxsize=None)(resolve)
        self._classify = alru_cache(maxsize=None)(classify)

    async def resolve(self, address: str) -> Optional[ContractInterface]:
        self._ensure_open()
        return await self._resolve(to_normalized_address(address))

    async def classify(self, address: str) -> AddressInfo:
        self._ensure_open()
        return await self._classify(to_normalized_address(address))

    def _caches(self) -> tuple:
        return (self._resolve, self._classify)

    async def close(self) -> None:
        logger.debug(f"Memo stats: resolve={self._resolve.cache_info()} classify={self._classify.cache_info()}")
        await super().close()
