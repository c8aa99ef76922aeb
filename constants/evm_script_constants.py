# Aragon EVMScript layout
# https://hack.aragon.org/docs/aragonos-ref#evmscripts

# 4-byte spec id prefixing every script. Only the "calls script" executor (id 1) exists on mainnet.
SPEC_ID_LENGTH = 4
CALLS_SCRIPT_SPEC_ID = bytes.fromhex("00000001")

# Each call segment: [20 bytes target][4 bytes calldata length, big-endian][calldata]
ADDRESS_LENGTH = 20
CALLDATA_LENGTH_SIZE = 4
SEGMENT_HEADER_LENGTH = ADDRESS_LENGTH + CALLDATA_LENGTH_SIZE

FUNCTION_SELECTOR_LENGTH = 4
