# trust_oracle/config.py
import os
from dotenv import load_dotenv

load_dotenv()


def _int_env(name, default):
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


class Config:
    # Ethereum Configuration
    WEB3_RPC_URL = os.getenv('WEB3_RPC_URL')
    CHAIN_ID = _int_env('CHAIN_ID', 11155111)  # Sepolia

    # Wallet Keys (Keep these secure!)
    ORACLE_PRIVATE_KEY = os.getenv('ORACLE_PRIVATE_KEY')

    # Smart Contract
    CONTRACT_ADDRESS = os.getenv('CONTRACT_ADDRESS')
    CONTRACT_ABI_PATH = os.getenv('CONTRACT_ABI_PATH')  # optional compiled artifact
    FULFILL_GAS_LIMIT = _int_env('FULFILL_GAS_LIMIT', 300000)

    # GoPlus Security API
    GOPLUS_API_URL = os.getenv('GOPLUS_API_URL', 'https://api.gopluslabs.io/api/v1/token_security')
    SCORER_TIMEOUT_SECONDS = _int_env('SCORER_TIMEOUT_SECONDS', 10)

    # Processing Configuration
    SCAN_INTERVAL_SECONDS = _int_env('SCAN_INTERVAL_SECONDS', 12)
    EVENT_POLL_INTERVAL_SECONDS = _int_env('EVENT_POLL_INTERVAL_SECONDS', 2)
    STORE_CAPACITY = _int_env('STORE_CAPACITY', 1000)

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()
    LOG_FILE = os.getenv('LOG_FILE', 'logs/oracle.log')

    # API Configuration
    API_HOST = os.getenv('API_HOST', '0.0.0.0')
    API_PORT = _int_env('PORT', 3001)

    REQUIRED = ('WEB3_RPC_URL', 'CONTRACT_ADDRESS', 'ORACLE_PRIVATE_KEY')

    @classmethod
    def validate(cls):
        missing = [name for name in cls.REQUIRED if not getattr(cls, name)]
        if missing:
            raise EnvironmentError(f"Missing env variables: {', '.join(missing)}")
