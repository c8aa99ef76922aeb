from typing import Any, Dict, Sequence

from eth_abi import decode, encode
from eth_abi.exceptions import DecodingError
from eth_utils import encode_hex

from abi.aragon_voting_abi import VOTING_ABI
from utils.abi_utils import find_function_by_name, function_selector, input_types, output_types
from utils.formatter_utils import to_bytes, to_normalized_address
from utils.logger_utils import get_logger
from voting.exceptions import RpcError
from voting.models.vote import VoteRecord
from voting.rpc_client import RpcClient

logger = get_logger("Voting Contract Service")


class VotingContractService:
    """
    Chain-side collaborator of the report pipeline: reads the voting contract and
    answers generic bytecode / eth_call queries for other addresses.
    """

    def __init__(self, rpc_client: RpcClient, voting_address: str):
        self._rpc_client = rpc_client
        self.voting_address = to_normalized_address(voting_address)

        self._get_vote_entry = self._voting_entry("getVote")
        self._votes_length_entry = self._voting_entry("votesLength")
        self._pct_base_entry = self._voting_entry("PCT_BASE")

    @staticmethod
    def _voting_entry(name: str) -> Dict[str, Any]:
        entry = find_function_by_name(VOTING_ABI, name)
        if entry is None:
            raise KeyError(f"{name} missing from VOTING_ABI")
        return entry

    async def get_vote_count(self) -> int:
        (count,) = await self._call(self.voting_address, self._votes_length_entry)
        return count

    async def get_percentage_base(self) -> int:
        (pct_base,) = await self._call(self.voting_address, self._pct_base_entry)
        return pct_base

    async def get_vote_record(self, vote_id: int, pct_base: int | None = None) -> VoteRecord:
        """
        Fetches the vote struct. pct_base is read from the contract unless given.

        Raises:
            RpcError: If the vote cannot be read (unknown id reverts, node failure...).
        """
        if pct_base is None:
            pct_base = await self.get_percentage_base()

        (
            is_open, executed, start_date, snapshot_block,
            support_required, min_accept_quorum,
            yea, nay, voting_power, script,
        ) = await self._call(self.voting_address, self._get_vote_entry, [vote_id])

        logger.debug(f"Fetched vote {vote_id}: open={is_open} executed={executed} script={len(script)} bytes")

        return VoteRecord(
            id=vote_id,
            open=is_open,
            executed=executed,
            start_date=start_date,
            snapshot_block=snapshot_block,
            support_required=support_required,
            min_accept_quorum=min_accept_quorum,
            yea=yea,
            nay=nay,
            voting_power=voting_power,
            script=script,
            pct_base=pct_base,
        )

    async def get_bytecode(self, address: str) -> bytes:
        code = await self._rpc_client.get_code(address)
        return to_bytes(code)

    async def call_contract_method(self, address: str, abi_entry: Dict[str, Any], args: Sequence[Any] = ()) -> Any:
        """
        Calls `abi_entry` on `address`. Returns the single output directly,
        or a tuple when the function has several outputs.
        """
        values = await self._call(address, abi_entry, args)
        return values[0] if len(values) == 1 else values

    async def _call(self, address: str, abi_entry: Dict[str, Any], args: Sequence[Any] = ()) -> tuple:
        data = function_selector(abi_entry) + encode(input_types(abi_entry), list(args))
        result = await self._rpc_client.eth_call(address, encode_hex(data))

        try:
            return decode(output_types(abi_entry), to_bytes(result))
        except (DecodingError, ValueError) as e:
            raise RpcError(f"Cannot decode {abi_entry['name']} output from {address}: {e}") from e
