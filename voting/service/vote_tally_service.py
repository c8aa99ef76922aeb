from datetime import datetime, timezone
from decimal import Decimal
from typing import Sequence

from utils.formatter_utils import round_decimal
from voting.models.call import DecodedCall
from voting.models.vote import VoteRecord, VoteReport, VoteStatus

PERCENT = Decimal(100)
PCT_DECIMALS = 2
AMOUNT_DECIMALS = 5


def safe_ratio(numerator: int, denominator: int) -> Decimal:
    """numerator / denominator, defined as 0 when the denominator is 0."""
    if denominator == 0:
        return Decimal(0)
    return Decimal(numerator) / Decimal(denominator)


def safe_percentage(numerator: int, denominator: int) -> Decimal:
    return safe_ratio(numerator, denominator) * PERCENT


class VoteTallyService:
    """Pure tally of a vote record: percentages, scaled amounts and the status decision."""

    @staticmethod
    def decide_status(is_open: bool, executed: bool, has_calls: bool, yea_pct: Decimal, support_required_pct: Decimal) -> VoteStatus:
        # Evaluated in order; the first matching rule wins
        if is_open:
            return VoteStatus.IN_PROGRESS
        if executed:
            return VoteStatus.ENACTED
        # NOTE: minAcceptQuorum is never checked, and "Passed" only applies to votes without calls
        if not has_calls and yea_pct > support_required_pct:
            return VoteStatus.PASSED
        return VoteStatus.REJECTED

    @classmethod
    def tally(cls, record: VoteRecord, calls: Sequence[DecodedCall]) -> VoteReport:
        pct_base = record.pct_base

        yea_pct = safe_percentage(record.yea, record.yea + record.nay)
        nay_pct = safe_percentage(record.nay, record.yea + record.nay)
        support_required_pct = safe_percentage(record.support_required, pct_base)
        min_accept_quorum_pct = safe_percentage(record.min_accept_quorum, pct_base)
        approval_pct = safe_percentage(record.yea, record.voting_power)

        status = cls.decide_status(record.open, record.executed, len(calls) > 0, yea_pct, support_required_pct)

        return VoteReport(
            id=record.id,
            status=status,
            open=record.open,
            executed=record.executed,
            start_date=datetime.fromtimestamp(record.start_date, tz=timezone.utc),
            snapshot_block=record.snapshot_block,
            support_required_pct=round_decimal(support_required_pct, PCT_DECIMALS),
            min_accept_quorum_pct=round_decimal(min_accept_quorum_pct, PCT_DECIMALS),
            yea_pct=round_decimal(yea_pct, PCT_DECIMALS),
            nay_pct=round_decimal(nay_pct, PCT_DECIMALS),
            approval_pct=round_decimal(approval_pct, PCT_DECIMALS),
            yea_amount=round_decimal(safe_ratio(record.yea, pct_base), AMOUNT_DECIMALS),
            nay_amount=round_decimal(safe_ratio(record.nay, pct_base), AMOUNT_DECIMALS),
            voting_power_amount=round_decimal(safe_ratio(record.voting_power, pct_base), AMOUNT_DECIMALS),
            calls=list(calls),
        )
