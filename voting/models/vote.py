from datetime import datetime
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field

from voting.models.call import DecodedCall


class VoteStatus(str, Enum):
    IN_PROGRESS = "In progress"
    ENACTED = "Passed (enacted)"
    PASSED = "Passed"
    REJECTED = "Rejected"


class VoteRecord(BaseModel):
    """Raw vote struct as returned by the voting contract. Counters are fixed-point, scaled by pct_base."""

    model_config = ConfigDict(frozen=True)

    id: int = Field(ge=0)
    open: bool
    executed: bool
    start_date: int                     # Unix timestamp
    snapshot_block: int
    support_required: int
    min_accept_quorum: int
    yea: int
    nay: int
    voting_power: int
    script: bytes = b""

    pct_base: int = Field(ge=0)


class VoteReport(BaseModel):
    model_config = ConfigDict(frozen=True, use_enum_values=True)

    id: int
    status: VoteStatus
    open: bool
    executed: bool
    start_date: datetime
    snapshot_block: int

    # Percentages (0-100), rounded to 2 decimals
    support_required_pct: float
    min_accept_quorum_pct: float
    yea_pct: float
    nay_pct: float
    approval_pct: float

    # Amounts scaled down by PCT_BASE, rounded to 5 decimals
    yea_amount: float
    nay_amount: float
    voting_power_amount: float

    calls: List[DecodedCall] = Field(default_factory=list)
