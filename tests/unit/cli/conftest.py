from datetime import datetime, timezone

import pytest

from voting.models.call import AccountType, AddressInfo, DecodedCall
from voting.models.vote import VoteReport, VoteStatus


def build_report(vote_id=1):
    call = DecodedCall(address_info=AddressInfo(address="0x" + "55" * 20, type=AccountType.EOA), decoded_args="0xdeadbeef")
    return VoteReport(
        id=vote_id,
        status=VoteStatus.REJECTED,
        open=False,
        executed=False,
        start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
        snapshot_block=19_000_000,
        support_required_pct=50.0,
        min_accept_quorum_pct=5.0,
        yea_pct=40.0,
        nay_pct=60.0,
        approval_pct=2.5,
        yea_amount=400.0,
        nay_amount=600.0,
        voting_power_amount=16000.0,
        calls=[call],
    )


@pytest.fixture
def make_report():
    return build_report
