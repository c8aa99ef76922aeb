from typing import Iterator, List, Union

from constants.evm_script_constants import (
    ADDRESS_LENGTH,
    CALLDATA_LENGTH_SIZE,
    CALLS_SCRIPT_SPEC_ID,
    SEGMENT_HEADER_LENGTH,
    SPEC_ID_LENGTH,
)
from utils.formatter_utils import to_bytes, to_hex, to_normalized_address
from utils.logger_utils import get_logger
from voting.exceptions import MalformedScriptError
from voting.models.call import RawCall

logger = get_logger("EVM Script Decoder")


class EvmScriptDecoder:
    """
    Parses Aragon "calls scripts".

    Layout after the 4-byte spec id, repeated until the end of the script:
        [20 bytes target address][4 bytes calldata length, big-endian][calldata]
    """

    @staticmethod
    def decode(script: Union[bytes, str]) -> Iterator[RawCall]:
        """
        Lazily yields the calls of a script body (no spec id), in script order.

        Raises:
            MalformedScriptError: When the remaining bytes cannot hold a full segment
                header or the declared calldata.
        """
        body = _script_bytes(script)
        offset = 0
        total = len(body)

        while offset < total:
            if offset + SEGMENT_HEADER_LENGTH > total:
                raise MalformedScriptError(
                    f"Truncated segment header: need {SEGMENT_HEADER_LENGTH} bytes, {total - offset} left",
                    offset,
                )

            target = body[offset:offset + ADDRESS_LENGTH]
            length_start = offset + ADDRESS_LENGTH
            calldata_length = int.from_bytes(body[length_start:length_start + CALLDATA_LENGTH_SIZE], "big")

            calldata_start = offset + SEGMENT_HEADER_LENGTH
            calldata_end = calldata_start + calldata_length
            if calldata_end > total:
                raise MalformedScriptError(
                    f"Truncated calldata: declared {calldata_length} bytes, {total - calldata_start} left",
                    calldata_start,
                )

            yield RawCall(
                target_address=to_normalized_address(to_hex(target)),
                calldata=body[calldata_start:calldata_end],
            )
            offset = calldata_end

    @classmethod
    def decode_evm_script(cls, script: Union[bytes, str]) -> List[RawCall]:
        """
        Decodes a full script: checks and strips the spec id, then parses every call.
        An empty script has no calls. The whole script is parsed before anything is
        returned, so a malformed tail never yields a partial call list.
        """
        data = _script_bytes(script)
        if not data:
            return []

        if len(data) < SPEC_ID_LENGTH:
            raise MalformedScriptError(f"Script too short for a spec id: {len(data)} bytes")

        spec_id = data[:SPEC_ID_LENGTH]
        if spec_id != CALLS_SCRIPT_SPEC_ID:
            raise MalformedScriptError(f"Unsupported EVM script spec id {to_hex(spec_id)}")

        calls = list(cls.decode(data[SPEC_ID_LENGTH:]))
        logger.debug(f"Decoded {len(calls)} call(s) from a {len(data)} byte script")
        return calls


def _script_bytes(script: Union[bytes, str]) -> bytes:
    try:
        return to_bytes(script)
    except ValueError as e:
        raise MalformedScriptError(str(e)) from e
