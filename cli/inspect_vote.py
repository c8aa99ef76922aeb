import asyncio
import sys
from typing import List, Optional, Sequence

import click

from config.configs import configs
from utils.async_utils import RetryPolicy
from utils.dump_utils import dump_models
from utils.logger_utils import configure_logging, get_logger
from utils.validation_utils import parse_vote_selections, validate_address
from voting.exceptions import InvalidVoteIdError
from voting.models.vote import VoteReport
from voting.vote_report_builder import open_vote_report_builder

logger = get_logger("Inspect Vote CLI")


def open_configured_builder(provider_uris: str, contract_address: str, etherscan_api_key: Optional[str]):
    """Report builder wired with the RPC, Etherscan and report settings from configs."""
    retry_policy = RetryPolicy(
        max_retries=configs.etherscan.max_retries,
        initial_delay=configs.etherscan.initial_delay,
        backoff_factor=configs.etherscan.backoff_factor,
    )
    return open_vote_report_builder(
        provider_uris,
        contract_address,
        etherscan_api_key,
        etherscan_api_url=configs.etherscan.api_url,
        etherscan_chain_id=configs.etherscan.chain_id,
        etherscan_timeout=configs.etherscan.timeout,
        rpc_max_retries=configs.ethereum.rpc_max_retries,
        rpc_timeout=configs.ethereum.rpc_timeout,
        rpc_min_interval=configs.ethereum.rpc_min_interval,
        retry_policy=retry_policy,
        max_concurrency=configs.report.max_concurrency,
    )


async def inspect_votes(
    vote_ids: Sequence[str], provider_uris: str, contract_address: str, etherscan_api_key: Optional[str]
) -> VoteReport | List[VoteReport]:
    """
    Builds the report for a single vote id. Several ids, or "all", give the list of
    reports in the order requested.
    """
    async with open_configured_builder(provider_uris, contract_address, etherscan_api_key) as builder:
        vote_count = await builder.chain.get_vote_count()
        selection = parse_vote_selections(vote_ids, vote_count)
        if selection is None:
            return await builder.build_reports(range(vote_count))
        if len(selection) == 1:
            return await builder.build_report(selection[0])
        return await builder.build_reports(selection)


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument("vote_ids", metavar="VOTE_ID...", nargs=-1, required=True, type=str)
@click.option(
    "-p",
    "--provider-uris",
    default=configs.ethereum.rpc_provider_uris,
    show_default=True,
    type=str,
    help="The URI(s) of the JSON-RPC provider(s). Multiple URIs can be separated by commas for failover.",
)
@click.option(
    "-c",
    "--contract-address",
    default=configs.ethereum.voting_contract_address,
    show_default=True,
    type=str,
    help="Address of the Aragon Voting contract.",
)
@click.option("--etherscan-api-key", default=configs.etherscan.api_key, type=str, help="Etherscan API key.")
@click.option("-o", "--output", default=None, type=click.Path(dir_okay=False), help="Write the JSON dump to this file instead of stdout.")
@click.option(
    "-d",
    "--depth",
    default=configs.report.dump_depth,
    show_default=True,
    type=click.IntRange(min=0),
    help="Nesting depth of the dump. Deeper values are shown as [Object] / [Array].",
)
@click.option("--log-file", default=None, show_default=True, type=str, help="Path to the log file.")
@click.option("--log-level", default=configs.app.log_level, show_default=True, type=str, help="Logging level.")
def inspect_vote(
    vote_ids: Sequence[str],
    provider_uris: str,
    contract_address: str,
    etherscan_api_key: Optional[str],
    output: Optional[str],
    depth: int,
    log_file: Optional[str],
    log_level: str,
):
    """
    Inspects an Aragon vote: decodes its execution script, resolves the called
    contracts and prints the tally. VOTE_ID is a vote number or "all"; several
    vote numbers print a list of reports.
    """
    configure_logging(log_file, log_level)

    try:
        validate_address(contract_address)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--contract-address'")

    try:
        reports = asyncio.run(inspect_votes(vote_ids, provider_uris, contract_address, etherscan_api_key))
    except KeyboardInterrupt:
        logger.info("Inspection interrupted by user.")
        return
    except InvalidVoteIdError as e:
        raise click.BadParameter(str(e), param_hint="'VOTE_ID'")
    except Exception:
        logger.exception("An error occurred while inspecting the vote:")
        sys.exit(1)

    dump = dump_models(reports, max_depth=depth)
    if output:
        with open(output, "w") as f:
            f.write(dump + "\n")
        logger.info(f"Report written to {output}")
    else:
        click.echo(dump)


if __name__ == "__main__":
    inspect_vote()
