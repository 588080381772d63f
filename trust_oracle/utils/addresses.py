# trust_oracle/utils/addresses.py
from web3 import Web3


def normalize_address(addr):
    """Normalize to a lowercase 0x-prefixed hex string for case-insensitive matching."""
    if not addr:
        return None
    a = str(addr).strip()
    if not a:
        return None
    if not a.lower().startswith("0x"):
        a = "0x" + a
    return a.lower()


def is_valid_address(addr):
    return isinstance(addr, str) and Web3.is_address(addr)
