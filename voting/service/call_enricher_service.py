from typing import Any, Iterable, List, Optional

from eth_abi import decode
from eth_abi.exceptions import ABITypeError, DecodingError, ParseError

from constants.evm_script_constants import FUNCTION_SELECTOR_LENGTH
from utils.abi_utils import AbiEntry, find_function_by_selector, input_types
from utils.async_utils import gather_or_cancel, gather_with_concurrency
from utils.formatter_utils import to_hex, to_json_compatible, to_normalized_address
from utils.logger_utils import get_logger
from voting.exceptions import AbiLookupError, RateLimitedError, RpcError
from voting.models.call import AccountType, AddressInfo, DecodedCall, RawCall, VerificationStatus
from voting.models.contract_interface import ContractInterface
from voting.report_memo import ReportMemo

logger = get_logger("Call Enricher Service")

DEFAULT_MAX_CONCURRENCY = 10


class CallEnricherService:
    """
    Turns RawCalls into DecodedCalls: classifies the target, resolves its ABI, decodes the
    calldata and swaps address arguments for their AddressInfo.

    Lookup failures only degrade the affected call or argument; they never escape.
    """

    def __init__(self, memo: ReportMemo, max_concurrency: int = DEFAULT_MAX_CONCURRENCY):
        self._memo = memo
        self._max_concurrency = max_concurrency

    async def enrich_all(self, raw_calls: Iterable[RawCall]) -> List[DecodedCall]:
        """Enriches every call concurrently. The result keeps script order."""
        return await gather_with_concurrency(
            self._max_concurrency, *(self.enrich(raw_call) for raw_call in raw_calls)
        )

    async def enrich(self, raw_call: RawCall) -> DecodedCall:
        address_info, interface = await gather_or_cancel(
            self._classify(raw_call.target_address),
            self._resolve(raw_call.target_address),
        )

        if interface is None:
            return self._raw_call(address_info, raw_call)

        abi_entry = find_function_by_selector(interface.abi, raw_call.selector)
        if abi_entry is None:
            logger.info(
                f"No function with selector {to_hex(raw_call.selector)} in the ABI of {raw_call.target_address}"
            )
            return self._raw_call(address_info, raw_call)

        try:
            values = decode(input_types(abi_entry), raw_call.calldata[FUNCTION_SELECTOR_LENGTH:])
        except (DecodingError, ABITypeError, ParseError) as e:
            logger.warning(f"Cannot decode {abi_entry['name']} calldata for {raw_call.target_address}: {e}")
            return self._raw_call(address_info, raw_call)

        decoded_args = await self._enrich_arguments(abi_entry.get("inputs", []), values)

        return DecodedCall(
            address_info=address_info,
            method_name=abi_entry["name"],
            inputs=abi_entry.get("inputs", []),
            decoded_args=decoded_args,
            outputs=abi_entry.get("outputs", []),
        )

    async def _enrich_arguments(self, inputs: List[AbiEntry], values: Iterable[Any]) -> List[Any]:
        # Only plain `address` arguments are replaced; arrays and tuples stay as decoded
        async def enrich_argument(param: AbiEntry, value: Any) -> Any:
            if param.get("type") == "address":
                return await self._classify(value)
            return to_json_compatible(value)

        return list(await gather_or_cancel(*(enrich_argument(p, v) for p, v in zip(inputs, values))))

    async def _classify(self, address: str) -> AddressInfo:
        try:
            return await self._memo.classify(address)
        except RpcError as e:
            logger.warning(f"Cannot read bytecode of {address}: {e}")
            return AddressInfo(address=to_normalized_address(address), type=AccountType.UNKNOWN)
        except AbiLookupError as e:
            logger.warning(f"Cannot read verification status of {address}: {e}")
            return AddressInfo(
                address=to_normalized_address(address),
                type=AccountType.CONTRACT,
                status=VerificationStatus.UNKNOWN,
            )

    async def _resolve(self, address: str) -> Optional[ContractInterface]:
        try:
            return await self._memo.resolve(address)
        except (RateLimitedError, AbiLookupError, RpcError) as e:
            logger.warning(f"Cannot resolve interface of {address}, keeping raw calldata: {e}")
            return None

    @staticmethod
    def _raw_call(address_info: AddressInfo, raw_call: RawCall) -> DecodedCall:
        return DecodedCall(address_info=address_info, decoded_args=to_hex(raw_call.calldata))
