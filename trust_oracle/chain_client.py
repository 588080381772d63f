# trust_oracle/chain_client.py
import json
import logging
import threading

from web3 import Web3

from trust_oracle.config import Config

logger = logging.getLogger(__name__)

# Audit oracle ABI (AuditRequested / SBTMinted events + oracle entry points)
CONTRACT_ABI = [
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "uint256", "name": "requestId", "type": "uint256"},
            {"indexed": True, "internalType": "address", "name": "target", "type": "address"},
            {"indexed": False, "internalType": "address", "name": "requester", "type": "address"},
            {"indexed": False, "internalType": "uint256", "name": "fee", "type": "uint256"},
        ],
        "name": "AuditRequested",
        "type": "event",
    },
    {
        "anonymous": False,
        "inputs": [
            {"indexed": True, "internalType": "address", "name": "target", "type": "address"},
            {"indexed": True, "internalType": "uint256", "name": "tokenId", "type": "uint256"},
            {"indexed": False, "internalType": "uint256", "name": "score", "type": "uint256"},
        ],
        "name": "SBTMinted",
        "type": "event",
    },
    {
        "inputs": [
            {"internalType": "uint256", "name": "requestId", "type": "uint256"},
            {"internalType": "uint256", "name": "score", "type": "uint256"},
            {"internalType": "bool", "name": "isHoneypot", "type": "bool"},
            {"internalType": "bool", "name": "isMintable", "type": "bool"},
            {"internalType": "bool", "name": "ownerCanWithdraw", "type": "bool"},
        ],
        "name": "fulfillAudit",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "contractAddress", "type": "address"}],
        "name": "tokenOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "uint256", "name": "tokenId", "type": "uint256"}],
        "name": "getAuditData",
        "outputs": [
            {
                "components": [
                    {"internalType": "uint256", "name": "score", "type": "uint256"},
                    {"internalType": "bool", "name": "isHoneypot", "type": "bool"},
                    {"internalType": "bool", "name": "isMintable", "type": "bool"},
                    {"internalType": "bool", "name": "ownerCanWithdraw", "type": "bool"},
                    {"internalType": "uint256", "name": "timestamp", "type": "uint256"},
                    {"internalType": "string", "name": "metadataURI", "type": "string"},
                ],
                "internalType": "struct AuditData",
                "name": "",
                "type": "tuple",
            }
        ],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "target", "type": "address"}],
        "name": "calculateFee",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


def load_contract_abi(artifact_path=None):
    """Read the ABI from a compiled artifact when one is configured."""
    if not artifact_path:
        return CONTRACT_ABI
    with open(artifact_path, 'r') as f:
        cj = json.load(f)
    return cj.get('abi', []) or CONTRACT_ABI


class ChainClient:
    """
    Narrow read/write view of the chain used by the oracle.

    Reads go straight to the node; writes are signed locally with the oracle
    key. Nonce allocation and broadcast are serialized so concurrent
    fulfillments do not collide on the same nonce.
    """

    def __init__(self, w3, contract_address, private_key, abi=None):
        self.w3 = w3
        self.account = w3.eth.account.from_key(private_key)
        self._private_key = private_key
        self.contract = w3.eth.contract(
            address=Web3.to_checksum_address(contract_address),
            abi=abi or CONTRACT_ABI,
        )
        self._send_lock = threading.Lock()

    @property
    def oracle_address(self):
        return self.account.address

    # ----------------- Reads -----------------
    def get_chain_id(self):
        return self.w3.eth.chain_id

    def get_block_number(self):
        return self.w3.eth.block_number

    def get_block(self, block_number, full_transactions=True):
        return self.w3.eth.get_block(block_number, full_transactions=full_transactions)

    def get_transaction(self, tx_hash):
        return self.w3.eth.get_transaction(tx_hash)

    def get_transaction_receipt(self, tx_hash):
        return self.w3.eth.get_transaction_receipt(tx_hash)

    # ----------------- Contract views -----------------
    def token_of(self, address):
        return int(self.contract.functions.tokenOf(Web3.to_checksum_address(address)).call())

    def get_audit_data(self, token_id):
        score, is_honeypot, is_mintable, owner_can_withdraw, timestamp, metadata_uri = (
            self.contract.functions.getAuditData(int(token_id)).call()
        )
        return {
            "score": int(score),
            "isHoneypot": bool(is_honeypot),
            "isMintable": bool(is_mintable),
            "ownerCanWithdraw": bool(owner_can_withdraw),
            "timestamp": int(timestamp),
            "metadataURI": metadata_uri,
            "tokenId": int(token_id),
        }

    def calculate_fee(self, address):
        return int(self.contract.functions.calculateFee(Web3.to_checksum_address(address)).call())

    def audit_request_filter(self, from_block='latest'):
        return self.contract.events.AuditRequested.create_filter(from_block=from_block)

    # ----------------- Writes -----------------
    def submit_transaction(self, method, args, gas_limit):
        """
        Sign and broadcast ``method(*args)`` on the oracle contract, then wait
        for inclusion. Returns ``{"status": int, "txHash": str}``.
        """
        func = getattr(self.contract.functions, method)(*args)
        with self._send_lock:
            nonce = self.w3.eth.get_transaction_count(self.account.address, 'pending')
            tx = func.build_transaction({
                'from': self.account.address,
                'nonce': nonce,
                'gas': gas_limit,
                'gasPrice': self.w3.eth.gas_price,
            })
            signed = self.w3.eth.account.sign_transaction(tx, self._private_key)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.info(f"🔗 TX sent: {tx_hash_hex}")
        receipt = self.w3.eth.wait_for_transaction_receipt(tx_hash)
        return {"status": int(receipt["status"]), "txHash": tx_hash_hex}

    def fulfill_audit(self, request_id, score, is_honeypot, is_mintable, owner_can_withdraw, gas_limit=None):
        return self.submit_transaction(
            "fulfillAudit",
            (int(request_id), int(score), bool(is_honeypot), bool(is_mintable), bool(owner_can_withdraw)),
            gas_limit or Config.FULFILL_GAS_LIMIT,
        )


def connect(rpc_url=None):
    """Open an HTTP provider and fail fast when the node cannot be reached."""
    rpc_url = rpc_url or Config.WEB3_RPC_URL
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    if not w3.is_connected():
        raise ConnectionError(f"Failed to connect to RPC: {rpc_url}")
    return w3
