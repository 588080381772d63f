# trust_oracle/block_scanner.py
"""
Periodic sweep over new blocks looking for freshly deployed contracts.

Every tick reads the chain head, scans each block after the watermark in
ascending order and records a score for every contract-creation receipt.
Sweep discoveries are record-only: nothing is written on-chain for them.

The watermark starts at head - 1 on the first tick, so a fresh process does
not backfill history. A tick that fires while another is still running is
skipped, not queued.
"""
import logging
import threading

from trust_oracle.config import Config
from trust_oracle.scan_store import ScanResult

logger = logging.getLogger(__name__)


def _get(obj, key, default=None):
    # web3 AttributeDict supports both item access and .get
    try:
        return obj[key]
    except (KeyError, TypeError, IndexError):
        return getattr(obj, key, default)


def _to_hex(value):
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if hasattr(value, "to_0x_hex"):
        return value.to_0x_hex()
    h = value.hex()
    return h if h.startswith("0x") else "0x" + h


class BlockScanner:
    def __init__(self, chain, scorer, store, interval=None, chain_id=None):
        self.chain = chain
        self.scorer = scorer
        self.store = store
        self.interval = interval if interval is not None else Config.SCAN_INTERVAL_SECONDS
        self.chain_id = chain_id or Config.CHAIN_ID
        self.last_processed_block = 0
        self._scan_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = None

    @property
    def is_scanning(self):
        return self._scan_lock.locked()

    def tick(self):
        """
        Run one sweep. Returns False when skipped because a sweep is already
        in flight or the head could not be read, True otherwise.
        """
        if not self._scan_lock.acquire(blocking=False):
            return False
        try:
            try:
                current_block = int(self.chain.get_block_number())
            except Exception as e:
                logger.error(f"❌ Block scanning error: could not read chain head: {e}")
                return False

            if self.last_processed_block == 0:
                self.last_processed_block = current_block - 1

            if current_block > self.last_processed_block:
                start = self.last_processed_block + 1
                logger.info(f"🔍 Scanning blocks {start} to {current_block}...")
                for block_number in range(start, current_block + 1):
                    self.scan_block(block_number)
                self.last_processed_block = current_block
            return True
        finally:
            self._scan_lock.release()

    def scan_block(self, block_number):
        """Record every contract deployed in ``block_number``. Errors are swallowed per block."""
        found = 0
        tx_hash = None
        try:
            block = self.chain.get_block(block_number, True)
            transactions = _get(block, "transactions") if block else None
            if not transactions:
                return 0

            for tx in transactions:
                if isinstance(tx, (str, bytes)) or not _get(tx, "from"):
                    tx = self.chain.get_transaction(tx)
                tx_hash = _get(tx, "hash")
                receipt = self.chain.get_transaction_receipt(tx_hash)
                contract_address = _get(receipt, "contractAddress") if receipt else None
                if not contract_address:
                    continue

                deployer = _get(tx, "from")
                logger.info(f"🆕 New contract detected: {contract_address} | Block: {block_number} | Deployer: {deployer}")

                outcome = self.scorer.score_address(contract_address, self.chain_id)
                if outcome is None:
                    continue

                logger.info(f"   Score: {outcome.score}/100")
                self.store.add_scan(ScanResult(
                    contract_address=contract_address,
                    score=outcome.score,
                    is_honeypot=outcome.is_honeypot,
                    is_mintable=outcome.is_mintable,
                    owner_can_withdraw=outcome.owner_can_withdraw,
                    has_certificate=False,
                    block_number=block_number,
                    deployer_address=deployer,
                ))
                found += 1
        except Exception as e:
            logger.debug(f"Skipping block {block_number} (tx {_to_hex(tx_hash)}): {e}")
        return found

    def _run(self):
        logger.info("🔍 Auto-scanning new contracts...")
        while not self._stop.wait(self.interval):
            try:
                self.tick()
            except Exception as e:
                logger.error(f"Sweep tick error: {e}")

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="block-scanner", daemon=True)
        self._thread.start()

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)
