import asyncio
import sys
from typing import Callable, Optional

import click

from cli.inspect_vote import open_configured_builder
from config.configs import configs
from utils.dump_utils import dump_models
from utils.logger_utils import configure_logging, get_logger
from utils.validation_utils import ALL_VOTES, parse_vote_selection, validate_address
from voting.exceptions import InvalidVoteIdError, VoteInspectorError
from voting.vote_report_builder import VoteReportBuilder

logger = get_logger("Interactive CLI")

QUIT_COMMANDS = ("q", "quit", "exit")
PROMPT_TEXT = f"Vote id ('{ALL_VOTES}' for every vote, 'q' to quit)"


async def run_prompt_loop(
    builder: VoteReportBuilder,
    depth: Optional[int],
    prompt: Callable[..., str] = click.prompt,
    echo: Callable[..., None] = click.echo,
) -> None:
    """
    Prompts for vote ids until the user quits.

    Invalid ids print a warning and re-prompt. A report that fails to build prints
    a diagnostic and the loop carries on with the next id.
    """
    vote_count = await builder.chain.get_vote_count()
    echo(f"Voting contract has {vote_count} vote(s).")

    while True:
        try:
            # Blocking input runs off the event loop
            raw = await asyncio.to_thread(prompt, PROMPT_TEXT, type=str)
        except (click.Abort, EOFError):
            echo("")
            return

        text = raw.strip()
        if text.lower() in QUIT_COMMANDS:
            return

        try:
            selection = parse_vote_selection(text, vote_count)
        except InvalidVoteIdError as e:
            logger.warning(str(e))
            echo(f"Warning: {e}")
            continue

        try:
            if selection is None:
                reports = await builder.build_reports(range(vote_count))
            else:
                reports = await builder.build_report(selection)
        except VoteInspectorError as e:
            logger.error(f"Failed to build report for '{text}': {e}")
            echo(f"Error: could not build report for '{text}': {e}")
            continue

        echo(dump_models(reports, max_depth=depth))


async def run_interactive(provider_uris: str, contract_address: str, etherscan_api_key: Optional[str], depth: int) -> None:
    async with open_configured_builder(provider_uris, contract_address, etherscan_api_key) as builder:
        await run_prompt_loop(builder, depth)


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
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
def interactive(
    provider_uris: str,
    contract_address: str,
    etherscan_api_key: Optional[str],
    depth: int,
    log_file: Optional[str],
    log_level: str,
):
    """Prompts for vote ids and prints their reports until 'q' or EOF."""
    configure_logging(log_file, log_level)

    try:
        validate_address(contract_address)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--contract-address'")

    try:
        asyncio.run(run_interactive(provider_uris, contract_address, etherscan_api_key, depth))
    except KeyboardInterrupt:
        logger.info("Interactive session interrupted by user.")
    except Exception:
        logger.exception("An error occurred during the interactive session:")
        sys.exit(1)


if __name__ == "__main__":
    interactive()
