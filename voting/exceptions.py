class VoteInspectorError(Exception):
    """Base class for errors raised while building a vote report."""


class MalformedScriptError(VoteInspectorError):
    """The execution script is truncated or carries an unknown spec id."""

    def __init__(self, message: str, offset: int | None = None):
        if offset is not None:
            message = f"{message} (at byte {offset})"
        super().__init__(message)
        self.offset = offset


class RpcError(VoteInspectorError):
    """A JSON-RPC call failed definitively or ran out of retries."""


class RetriableRpcError(RpcError):
    """A JSON-RPC error that another node (or a later attempt) may not reproduce."""


class RateLimitedError(VoteInspectorError):
    """The ABI source asked us to slow down. Safe to retry."""


class AbiLookupError(VoteInspectorError, LookupError):
    """The ABI source gave a definitive error for an address (e.g. invalid address)."""

    def __init__(self, address: str, message: str):
        super().__init__(f"ABI lookup failed for {address}: {message}")
        self.address = address


class InvalidVoteIdError(VoteInspectorError, ValueError):
    """A vote id typed by the user is not numeric or out of range."""
