import json

import pytest
from click.testing import CliRunner
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock, patch

from cli import cli
from cli.inspect_vote import inspect_votes
from voting.exceptions import InvalidVoteIdError, RpcError

VOTING = "0x2e59A20f205bB85a89C53f1936454680651E618e"


@pytest.fixture(autouse=True)
def quiet_logging():
    with patch("cli.inspect_vote.configure_logging"):
        yield


@pytest.fixture
def mock_inspect_votes(make_report):
    with patch("cli.inspect_vote.inspect_votes", new_callable=AsyncMock) as mock:
        mock.return_value = make_report()
        yield mock


def test_prints_report_as_json(mock_inspect_votes):
    result = CliRunner().invoke(cli, ["inspect_vote", "1", "-c", VOTING, "-p", "https://rpc.example"])

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["id"] == 1
    assert report["status"] == "Rejected"
    assert report["calls"][0]["decoded_args"] == "0xdeadbeef"
    mock_inspect_votes.assert_awaited_once()
    assert mock_inspect_votes.await_args.args[:3] == (("1",), "https://rpc.example", VOTING)


def test_depth_limits_the_dump(mock_inspect_votes):
    result = CliRunner().invoke(cli, ["inspect_vote", "1", "-c", VOTING, "--depth", "1"])

    assert result.exit_code == 0, result.output
    report = json.loads(result.stdout)
    assert report["calls"] == ["[Object]"]


def test_all_votes_are_dumped_as_a_list(mock_inspect_votes, make_report):
    mock_inspect_votes.return_value = [make_report(0), make_report(1)]

    result = CliRunner().invoke(cli, ["inspect_vote", "all", "-c", VOTING])

    assert result.exit_code == 0, result.output
    assert [r["id"] for r in json.loads(result.stdout)] == [0, 1]


def test_writes_output_file(mock_inspect_votes, tmp_path):
    output = tmp_path / "vote.json"

    result = CliRunner().invoke(cli, ["inspect_vote", "1", "-c", VOTING, "-o", str(output)])

    assert result.exit_code == 0, result.output
    assert json.loads(output.read_text())["id"] == 1


def test_pipeline_error_exits_with_one(mock_inspect_votes):
    mock_inspect_votes.side_effect = RpcError("eth_call failed after 5 attempts")

    result = CliRunner().invoke(cli, ["inspect_vote", "1", "-c", VOTING])

    assert result.exit_code == 1


def test_invalid_vote_id_is_a_usage_error(mock_inspect_votes):
    mock_inspect_votes.side_effect = InvalidVoteIdError("Vote 99 is out of range. Valid ids are 0 to 41.")

    result = CliRunner().invoke(cli, ["inspect_vote", "99", "-c", VOTING])

    assert result.exit_code == 2
    assert "out of range" in result.output


def test_invalid_contract_address(mock_inspect_votes):
    result = CliRunner().invoke(cli, ["inspect_vote", "1", "-c", "0x1234"])

    assert result.exit_code == 2
    mock_inspect_votes.assert_not_awaited()


def test_negative_depth_is_rejected(mock_inspect_votes):
    result = CliRunner().invoke(cli, ["inspect_vote", "1", "-c", VOTING, "--depth", "-1"])

    assert result.exit_code == 2


def test_several_vote_ids_are_passed_through(mock_inspect_votes, make_report):
    mock_inspect_votes.return_value = [make_report(3), make_report(1)]

    result = CliRunner().invoke(cli, ["inspect_vote", "3", "1", "-c", VOTING])

    assert result.exit_code == 0, result.output
    assert [r["id"] for r in json.loads(result.stdout)] == [3, 1]
    assert mock_inspect_votes.await_args.args[0] == ("3", "1")


def test_vote_id_is_required(mock_inspect_votes):
    result = CliRunner().invoke(cli, ["inspect_vote", "-c", VOTING])

    assert result.exit_code == 2
    mock_inspect_votes.assert_not_awaited()


@pytest.fixture
def fake_builder(make_report):
    builder = MagicMock()
    builder.chain.get_vote_count = AsyncMock(return_value=5)
    builder.build_report = AsyncMock(side_effect=lambda vote_id: make_report(vote_id))
    builder.build_reports = AsyncMock(side_effect=lambda vote_ids: [make_report(v) for v in vote_ids])

    @asynccontextmanager
    async def open_builder(*args):
        yield builder

    with patch("cli.inspect_vote.open_configured_builder", open_builder):
        yield builder


@pytest.mark.asyncio
async def test_inspect_votes_single_id_returns_one_report(fake_builder):
    report = await inspect_votes(["2"], "https://rpc.example", VOTING, None)

    assert report.id == 2
    fake_builder.build_report.assert_awaited_once_with(2)


@pytest.mark.asyncio
async def test_inspect_votes_several_ids_keep_their_order(fake_builder):
    reports = await inspect_votes(["4", "0", "2"], "https://rpc.example", VOTING, None)

    assert [r.id for r in reports] == [4, 0, 2]
    fake_builder.build_reports.assert_awaited_once_with([4, 0, 2])


@pytest.mark.asyncio
async def test_inspect_votes_all(fake_builder):
    reports = await inspect_votes(["all"], "https://rpc.example", VOTING, None)

    assert [r.id for r in reports] == [0, 1, 2, 3, 4]


@pytest.mark.asyncio
async def test_inspect_votes_rejects_a_bad_id_before_building(fake_builder):
    with pytest.raises(InvalidVoteIdError):
        await inspect_votes(["1", "7"], "https://rpc.example", VOTING, None)

    fake_builder.build_reports.assert_not_awaited()
