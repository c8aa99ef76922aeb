from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Sequence, Tuple

from constants.contract_proxy_constants import PROXY_IMPLEMENTATION_METHOD_NAMES, ZERO_ADDRESS
from utils.abi_utils import AbiEntry, iter_functions, output_types
from utils.async_utils import RetryPolicy
from utils.formatter_utils import to_normalized_address
from utils.logger_utils import get_logger
from voting.exceptions import AbiLookupError, RateLimitedError, RpcError
from voting.models.contract_interface import ContractInterface
from voting.service.voting_contract_service import VotingContractService

logger = get_logger("ABI Resolver Service")


class AbiSource(Protocol):
    async def get_interface(self, address: str) -> Optional[List[Dict[str, Any]]]: ...


ImplementationLoader = Callable[[VotingContractService, str, AbiEntry], Awaitable[Optional[str]]]


async def call_address_getter(chain: VotingContractService, proxy_address: str, abi_entry: AbiEntry) -> Optional[str]:
    """Calls a zero-argument getter returning an address. The zero address means "no implementation"."""
    value = await chain.call_contract_method(proxy_address, abi_entry)
    address = to_normalized_address(value)
    if not address or address.lower() == ZERO_ADDRESS:
        return None
    return address


class ImplementationAccessor:
    """A recognised proxy getter and the function used to read it."""

    def __init__(self, method_name: str, loader: ImplementationLoader = call_address_getter):
        self.method_name = method_name
        self._loader = loader

    def matches(self, abi_entry: AbiEntry) -> bool:
        return (
            abi_entry.get("name") == self.method_name
            and not abi_entry.get("inputs")
            and output_types(abi_entry) == ["address"]
        )

    async def load(self, chain: VotingContractService, proxy_address: str, abi_entry: AbiEntry) -> Optional[str]:
        return await self._loader(chain, proxy_address, abi_entry)

    def __repr__(self) -> str:
        return f"ImplementationAccessor({self.method_name!r})"


IMPLEMENTATION_ACCESSORS: Tuple[ImplementationAccessor, ...] = tuple(
    ImplementationAccessor(name) for name in PROXY_IMPLEMENTATION_METHOD_NAMES
)


class AbiResolverService:
    """
    Resolves the interface of an address, following at most one proxy hop.

    The ABI of the queried address is fetched first. If it exposes one of the known
    implementation getters, the getter is called on chain and the implementation's ABI
    is returned instead. An unverified address resolves to None.
    """

    def __init__(
        self,
        abi_source: AbiSource,
        chain: VotingContractService,
        retry_policy: RetryPolicy | None = None,
        accessors: Sequence[ImplementationAccessor] = IMPLEMENTATION_ACCESSORS,
    ):
        self._chain = chain
        self._accessors = tuple(accessors)
        retry_policy = retry_policy or RetryPolicy()
        self._fetch_abi = retry_policy.wrap(abi_source.get_interface, exceptions=(RateLimitedError,))

    async def resolve(self, address: str) -> Optional[ContractInterface]:
        """
        Raises:
            RateLimitedError: Still rate limited after the retry policy is exhausted.
            AbiLookupError: Definitive ABI source error for `address`.
        """
        address = to_normalized_address(address)
        abi = await self._fetch_abi(address)
        if abi is None:
            logger.debug(f"No interface registered for {address}")
            return None

        proxy_interface = ContractInterface(address=address, abi=abi)

        found = self.find_accessor(abi)
        if found is None:
            return proxy_interface

        accessor, abi_entry = found
        try:
            implementation_address = await accessor.load(self._chain, address, abi_entry)
        except RpcError as e:
            logger.warning(f"Proxy getter {accessor.method_name}() failed on {address}: {e}. Using proxy ABI.")
            return proxy_interface

        if implementation_address is None or implementation_address == address:
            return proxy_interface

        # Single hop: the implementation's own getters are not followed
        try:
            implementation_abi = await self._fetch_abi(implementation_address)
        except (RateLimitedError, AbiLookupError) as e:
            logger.warning(f"Cannot fetch implementation ABI of proxy {address}: {e}. Using proxy ABI.")
            return proxy_interface

        if implementation_abi is None:
            logger.info(f"Implementation {implementation_address} of proxy {address} is not verified. Using proxy ABI.")
            return proxy_interface

        logger.debug(f"Resolved proxy {address} -> implementation {implementation_address}")
        return ContractInterface(
            address=address,
            abi=implementation_abi,
            implementation_address=implementation_address,
        )

    def find_accessor(self, abi: List[AbiEntry]) -> Optional[Tuple[ImplementationAccessor, AbiEntry]]:
        functions = list(iter_functions(abi))
        for accessor in self._accessors:
            for entry in functions:
                if accessor.matches(entry):
                    return accessor, entry
        return None
