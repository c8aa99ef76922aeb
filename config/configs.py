import os
from typing import Any

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def get_env(key: str, default: Any = None, cast_type: type = str):
    value = os.getenv(key)
    if value is None or value == "":
        return default

    if cast_type == bool:
        return value.lower() in ("true", "1", "t", "yes", "on")
    try:
        return cast_type(value)
    except (ValueError, TypeError):
        return default


class AppConfigs:
    def __init__(self):
        self.name = get_env("APP_NAME", "Vote Inspector")
        self.debug = get_env("DEBUG", False, bool)
        self.log_level = get_env("LOG_LEVEL", "DEBUG" if self.debug else "INFO")


class EthereumConfigs:
    def __init__(self):
        # Comma separated, requests fail over between them
        self.rpc_provider_uris = get_env("RPC_PROVIDER_URIS", "https://ethereum-rpc.publicnode.com")
        self.rpc_timeout = get_env("RPC_TIMEOUT", 60, int)
        self.rpc_max_retries = get_env("RPC_MAX_RETRIES", 5, int)
        self.rpc_min_interval = get_env("RPC_MIN_INTERVAL", 0.15, float)
        # Aragon Voting app (Lido DAO voting by default)
        self.voting_contract_address = get_env(
            "VOTING_CONTRACT_ADDRESS", "0x2e59A20f205bB85a89C53f1936454680651E618e"
        )


class EtherscanConfigs:
    def __init__(self):
        self.api_key = get_env("ETHERSCAN_API_KEY")
        self.api_url = get_env("ETHERSCAN_API_URL", "https://api.etherscan.io/v2/api")
        self.chain_id = get_env("ETHERSCAN_CHAIN_ID", 1, int)
        self.timeout = get_env("ETHERSCAN_TIMEOUT", 30, int)
        # Bounded retry on "rate limit reached" answers
        self.max_retries = get_env("ETHERSCAN_MAX_RETRIES", 5, int)
        self.initial_delay = get_env("ETHERSCAN_INITIAL_DELAY", 1.0, float)
        self.backoff_factor = get_env("ETHERSCAN_BACKOFF_FACTOR", 2.0, float)


class ReportConfigs:
    def __init__(self):
        self.dump_depth = get_env("REPORT_DUMP_DEPTH", 4, int)
        self.max_concurrency = get_env("REPORT_MAX_CONCURRENCY", 10, int)


class SystemConfigs:
    def __init__(self):
        self.app = AppConfigs()
        self.ethereum = EthereumConfigs()
        self.etherscan = EtherscanConfigs()
        self.report = ReportConfigs()

# Singleton instance
configs = SystemConfigs()
