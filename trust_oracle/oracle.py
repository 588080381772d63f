# trust_oracle/oracle.py
import logging
import os
import signal
import sys

from trust_oracle.app import create_app, socketio
from trust_oracle.block_scanner import BlockScanner
from trust_oracle.chain_client import ChainClient, connect, load_contract_abi
from trust_oracle.config import Config
from trust_oracle.event_listener import AuditRequestListener
from trust_oracle.fulfillment import FulfillmentPipeline
from trust_oracle.scan_store import ScanStore
from trust_oracle.security_scorer import SecurityScorer

logger = logging.getLogger("Oracle")


def configure_logging():
    log_dir = os.path.dirname(Config.LOG_FILE)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)
    logging.basicConfig(
        level=getattr(logging, Config.LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(Config.LOG_FILE, encoding='utf-8'),
            logging.StreamHandler(),
        ],
    )


class Oracle:
    """Wires the store, scorer, chain client and both triggers together."""

    def __init__(self, chain, scorer=None, store=None):
        self.chain = chain
        self.store = store or ScanStore(Config.STORE_CAPACITY)
        self.scorer = scorer or SecurityScorer()
        self.pipeline = FulfillmentPipeline(self.scorer, self.chain, self.store)
        self.listener = AuditRequestListener(self.chain, self.pipeline)
        self.scanner = BlockScanner(self.chain, self.scorer, self.store)
        self.app = create_app(self.store, self.chain)

    def start(self):
        self.listener.start()
        self.scanner.start()

    def stop(self):
        logger.info("⏹️ Shutting down gracefully...")
        self.listener.stop(timeout=5)
        self.scanner.stop(timeout=5)


def build_oracle():
    Config.validate()
    w3 = connect(Config.WEB3_RPC_URL)
    chain = ChainClient(
        w3,
        Config.CONTRACT_ADDRESS,
        Config.ORACLE_PRIVATE_KEY,
        abi=load_contract_abi(Config.CONTRACT_ABI_PATH),
    )
    logger.info(f"⛓️ Connected to chain ID: {chain.get_chain_id()}")
    logger.info(f"📝 Contract: {Config.CONTRACT_ADDRESS}")
    logger.info(f"🔑 Oracle: {chain.oracle_address}")
    return Oracle(chain)


def main():
    configure_logging()
    logger.info("🚀 Starting Base Trust Layer Oracle...")
    try:
        oracle = build_oracle()
    except Exception as e:
        logger.critical(f"❌ Startup error: {e}")
        sys.exit(1)

    def _shutdown(signum, frame):
        oracle.stop()
        sys.exit(0)

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    oracle.start()
    logger.info("✅ System ready!")
    logger.info(f"🌐 API server running on port {Config.API_PORT}")
    socketio.run(oracle.app, host=Config.API_HOST, port=Config.API_PORT, debug=False, allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
