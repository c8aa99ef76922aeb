from contextlib import asynccontextmanager
from typing import AsyncIterator, Iterable, List, Optional

from utils.async_utils import RetryPolicy
from utils.logger_utils import get_logger
from voting.etherscan_client import DEFAULT_ETHERSCAN_API_URL, EtherscanClient
from voting.models.vote import VoteReport
from voting.report_memo import ReportAbiSource, ReportMemo
from voting.rpc_client import RpcClient
from voting.service.abi_resolver_service import AbiResolverService, AbiSource
from voting.service.address_classifier_service import AddressClassifierService
from voting.service.call_enricher_service import DEFAULT_MAX_CONCURRENCY, CallEnricherService
from voting.service.evm_script_decoder import EvmScriptDecoder
from voting.service.vote_tally_service import VoteTallyService
from voting.service.voting_contract_service import VotingContractService

logger = get_logger("Vote Report Builder")


class VoteReportBuilder:
    """
    Runs one report generation per vote:
    fetch record -> decode script -> enrich calls (report-scoped memos) -> tally.

    Failing to fetch the record or decode its script aborts the report; enrichment
    problems only degrade individual calls.
    """

    def __init__(
        self,
        chain: VotingContractService,
        abi_source: AbiSource,
        retry_policy: RetryPolicy | None = None,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ):
        self._chain = chain
        self._abi_source = abi_source
        self._retry_policy = retry_policy
        self._max_concurrency = max_concurrency

    @property
    def chain(self) -> VotingContractService:
        return self._chain

    async def build_report(self, vote_id: int) -> VoteReport:
        logger.info(f"Building report for vote {vote_id}...")
        record = await self._chain.get_vote_record(vote_id)
        raw_calls = EvmScriptDecoder.decode_evm_script(record.script)

        async with ReportAbiSource(self._abi_source) as abi_source:
            resolver = AbiResolverService(abi_source, self._chain, self._retry_policy)
            classifier = AddressClassifierService(self._chain, abi_source, self._retry_policy)
            async with ReportMemo(resolver.resolve, classifier.classify) as memo:
                enricher = CallEnricherService(memo, max_concurrency=self._max_concurrency)
                calls = await enricher.enrich_all(raw_calls)

        report = VoteTallyService.tally(record, calls)
        logger.info(f"Vote {vote_id}: {report.status} ({len(report.calls)} call(s))")
        return report

    async def build_reports(self, vote_ids: Iterable[int]) -> List[VoteReport]:
        # One report at a time, each with its own memo
        reports = []
        for vote_id in vote_ids:
            reports.append(await self.build_report(vote_id))
        return reports

    async def build_all_reports(self) -> List[VoteReport]:
        vote_count = await self._chain.get_vote_count()
        logger.info(f"Voting contract has {vote_count} vote(s)")
        return await self.build_reports(range(vote_count))


def create_vote_report_builder(
    rpc_client: RpcClient,
    etherscan_client: EtherscanClient,
    voting_address: str,
    retry_policy: RetryPolicy | None = None,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> VoteReportBuilder:
    chain = VotingContractService(rpc_client, voting_address)
    return VoteReportBuilder(chain, etherscan_client, retry_policy=retry_policy, max_concurrency=max_concurrency)


@asynccontextmanager
async def open_vote_report_builder(
    provider_uris: str,
    voting_address: str,
    etherscan_api_key: Optional[str],
    etherscan_api_url: str = DEFAULT_ETHERSCAN_API_URL,
    etherscan_chain_id: int = 1,
    etherscan_timeout: int = 30,
    rpc_max_retries: int = 5,
    rpc_timeout: int = 60,
    rpc_min_interval: float = 0.15,
    retry_policy: RetryPolicy | None = None,
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
) -> AsyncIterator[VoteReportBuilder]:
    """Opens the RPC and Etherscan sessions for the lifetime of the builder."""
    if not etherscan_api_key:
        logger.warning("No Etherscan API key configured, ABI lookups will be heavily rate limited")

    rpc_client = RpcClient(
        provider_uris, max_retries=rpc_max_retries, timeout=rpc_timeout, rpc_min_interval=rpc_min_interval
    )
    async with rpc_client:
        async with EtherscanClient(
            etherscan_api_key, base_url=etherscan_api_url, chain_id=etherscan_chain_id, timeout=etherscan_timeout
        ) as etherscan_client:
            yield create_vote_report_builder(
                rpc_client,
                etherscan_client,
                voting_address,
                retry_policy=retry_policy,
                max_concurrency=max_concurrency,
            )
