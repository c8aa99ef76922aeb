# Zero-argument getters exposing a proxy's implementation address.
# Names follow the common proxy patterns (OpenZeppelin, Aragon AppProxy, EIP-897,
# Optimism L1ChugSplashProxy and friends).
PROXY_IMPLEMENTATION_METHOD_NAMES = (
    "implementation",
    "getImplementation",
    "get_implementation",
    "_implementation",
    "proxy_getImplementation",
    "__Proxy_implementation",
)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
