from typing import List, Optional, Sequence

from eth_utils import is_address

from voting.exceptions import InvalidVoteIdError

# Sentinel accepted wherever a vote id is expected, meaning "every known vote"
ALL_VOTES = "all"


def parse_vote_selection(raw: str, vote_count: int) -> Optional[int]:
    """
    Parse a vote id typed by the user.

    Args:
        raw: The user input, a non-negative integer or "all".
        vote_count: Number of votes in the voting contract. Valid ids are 0..vote_count-1.

    Returns:
        The vote id, or None when every vote was requested.

    Raises:
        InvalidVoteIdError: If the input is not numeric or out of range.
    """
    text = raw.strip()
    if text.lower() == ALL_VOTES:
        return None

    try:
        vote_id = int(text)
    except ValueError:
        raise InvalidVoteIdError(f"'{text}' is not a vote id. Enter a number or '{ALL_VOTES}'.") from None

    validate_vote_id(vote_id, vote_count)
    return vote_id


def parse_vote_selections(raws: Sequence[str], vote_count: int) -> Optional[List[int]]:
    """
    Parse several vote ids typed on the command line.

    Returns:
        The vote ids in the order given, or None when every vote was requested.

    Raises:
        InvalidVoteIdError: If an id is invalid, or "all" is mixed with vote ids.
    """
    selections = [parse_vote_selection(raw, vote_count) for raw in raws]
    if None in selections:
        if len(selections) > 1:
            raise InvalidVoteIdError(f"'{ALL_VOTES}' cannot be combined with other vote ids.")
        return None
    return selections


def validate_vote_id(vote_id: int, vote_count: int) -> None:
    """
    Raises:
        InvalidVoteIdError: If vote_id is outside 0..vote_count-1.
    """
    if vote_id < 0 or vote_id >= vote_count:
        if vote_count == 0:
            raise InvalidVoteIdError(f"Vote {vote_id} does not exist: the contract has no votes yet.")
        raise InvalidVoteIdError(f"Vote {vote_id} is out of range. Valid ids are 0 to {vote_count - 1}.")


def validate_address(address: str) -> str:
    """
    Raises:
        ValueError: If address is not a 20-byte hex address.
    """
    if not address or not is_address(address):
        raise ValueError(f"Invalid Ethereum address: {address!r}")
    return address
