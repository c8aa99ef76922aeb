from typing import Protocol

from utils.async_utils import RetryPolicy
from utils.formatter_utils import to_normalized_address
from utils.logger_utils import get_logger
from voting.exceptions import RateLimitedError
from voting.models.call import AccountType, AddressInfo, VerificationStatus
from voting.service.voting_contract_service import VotingContractService

logger = get_logger("Address Classifier Service")


class VerificationSource(Protocol):
    async def get_verification_status(self, address: str) -> bool: ...


class AddressClassifierService:
    def __init__(
        self,
        chain: VotingContractService,
        verification_source: VerificationSource,
        retry_policy: RetryPolicy | None = None,
    ):
        self._chain = chain
        retry_policy = retry_policy or RetryPolicy()
        self._fetch_status = retry_policy.wrap(
            verification_source.get_verification_status, exceptions=(RateLimitedError,)
        )

    async def classify(self, address: str) -> AddressInfo:
        """
        EOA when there is no bytecode at `address`, Contract otherwise. Contracts also get
        their verification status, which degrades to Unknown once rate limit retries run out.

        Raises:
            RpcError: The bytecode could not be fetched.
            AbiLookupError: The ABI source rejected the address.
        """
        address = to_normalized_address(address)

        bytecode = await self._chain.get_bytecode(address)
        if not bytecode:
            return AddressInfo(address=address, type=AccountType.EOA)

        try:
            verified = await self._fetch_status(address)
        except RateLimitedError as e:
            logger.warning(f"Verification status of {address} unknown: {e}")
            return AddressInfo(address=address, type=AccountType.CONTRACT, status=VerificationStatus.UNKNOWN)

        status = VerificationStatus.VERIFIED if verified else VerificationStatus.NOT_VERIFIED
        return AddressInfo(address=address, type=AccountType.CONTRACT, status=status)
