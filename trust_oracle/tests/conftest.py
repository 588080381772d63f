"""
Pytest fixtures for the oracle tests. Chain and GoPlus are replaced with
in-memory fakes so no network access is needed.
"""
import pytest

from trust_oracle.scan_store import ScanStore
from trust_oracle.security_scorer import ScanOutcome

TARGET = "0x1f9840a85d5aF5bf1D1762F925BDADdC4201F984"
REQUESTER = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
DEPLOYER = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


class FakeScorer:
    def __init__(self, outcome=None, error=None):
        self.outcome = outcome
        self.error = error
        self.calls = []

    def score_address(self, address, chain_id=None):
        self.calls.append((address, chain_id))
        if self.error:
            raise self.error
        return self.outcome


class FakeChain:
    def __init__(self, head=100):
        self.heads = [head]
        self.blocks = {}
        self.receipts = {}
        self.fulfilled = []
        self.fulfill_status = 1
        self.fulfill_error = None
        self.block_requests = []
        self.head_error = None
        self.oracle_address = "0x000000000000000000000000000000000000dEaD"

    def get_block_number(self):
        if self.head_error:
            raise self.head_error
        if len(self.heads) > 1:
            return self.heads.pop(0)
        return self.heads[0]

    def get_block(self, block_number, full_transactions=True):
        self.block_requests.append(block_number)
        block = self.blocks.get(block_number, {"number": block_number, "transactions": []})
        if isinstance(block, Exception):
            raise block
        return block

    def get_transaction(self, tx_hash):
        for block in self.blocks.values():
            if isinstance(block, dict):
                for tx in block["transactions"]:
                    if isinstance(tx, dict) and tx["hash"] == tx_hash:
                        return tx
        raise KeyError(tx_hash)

    def get_transaction_receipt(self, tx_hash):
        receipt = self.receipts.get(tx_hash, {"status": 1, "contractAddress": None})
        if isinstance(receipt, Exception):
            raise receipt
        return receipt

    def fulfill_audit(self, request_id, score, is_honeypot, is_mintable, owner_can_withdraw, gas_limit=None):
        self.fulfilled.append((request_id, score, is_honeypot, is_mintable, owner_can_withdraw, gas_limit))
        if self.fulfill_error:
            raise self.fulfill_error
        return {"status": self.fulfill_status, "txHash": f"0x{request_id:064x}"}

    def deploy(self, block_number, tx_hash, contract_address, deployer=DEPLOYER):
        block = self.blocks.setdefault(block_number, {"number": block_number, "transactions": []})
        block["transactions"].append({"hash": tx_hash, "from": deployer})
        self.receipts[tx_hash] = {"status": 1, "contractAddress": contract_address}


@pytest.fixture
def store():
    return ScanStore(capacity=1000)


@pytest.fixture
def safe_outcome():
    return ScanOutcome(score=85, is_honeypot=False, is_mintable=False, owner_can_withdraw=False)


@pytest.fixture
def chain():
    return FakeChain()
