# trust_oracle/fulfillment.py
import logging

from web3 import Web3

from trust_oracle.config import Config
from trust_oracle.scan_store import ScanResult
from trust_oracle.security_scorer import FALLBACK_OUTCOME

logger = logging.getLogger(__name__)


def _format_fee(fee):
    try:
        return f"{Web3.from_wei(fee or 0, 'ether')} ETH"
    except (TypeError, ValueError) as e:
        logger.warning(f"Unreadable fee {fee!r}: {e}")
        return f"{fee!r} wei"


class FulfillmentPipeline:
    """Score a target, write the audit on-chain, record the certificate."""

    def __init__(self, scorer, chain, store, gas_limit=None, chain_id=None):
        self.scorer = scorer
        self.chain = chain
        self.store = store
        self.gas_limit = gas_limit or Config.FULFILL_GAS_LIMIT
        self.chain_id = chain_id or Config.CHAIN_ID

    def fulfill(self, request_id, target, requester, fee):
        """
        Handle one AuditRequested event. Never raises: a failed request is
        logged with its id and left unfulfilled on-chain.
        """
        try:
            logger.info(f"📝 NEW AUDIT REQUEST #{request_id}")
            logger.info(f"   Target: {target} | Requester: {requester} | Fee: {_format_fee(fee)}")

            # 1. Score
            outcome = self.scorer.score_address(target, self.chain_id)
            if outcome is None:
                logger.warning(f"⚠️ Using default safe values for audit #{request_id}")
                outcome = FALLBACK_OUTCOME

            logger.info(
                f"📊 Scan Result #{request_id}: score={outcome.score} honeypot={outcome.is_honeypot} "
                f"mintable={outcome.is_mintable} owner_can_withdraw={outcome.owner_can_withdraw}"
            )

            # 2. Write to Blockchain
            logger.info(f"📤 Fulfilling audit #{request_id}...")
            receipt = self.chain.fulfill_audit(
                request_id,
                outcome.score,
                outcome.is_honeypot,
                outcome.is_mintable,
                outcome.owner_can_withdraw,
                gas_limit=self.gas_limit,
            )

            # 3. Record
            if receipt.get("status") == 1:
                logger.info(f"✅ Audit #{request_id} completed, SBT minted for {target} (tx {receipt.get('txHash')})")
                self.store.add_scan(ScanResult(
                    contract_address=target,
                    score=outcome.score,
                    is_honeypot=outcome.is_honeypot,
                    is_mintable=outcome.is_mintable,
                    owner_can_withdraw=outcome.owner_can_withdraw,
                    has_certificate=True,
                ))
                return True

            # TODO: queue reverted fulfillments for a retry once the contract exposes request state
            logger.error(f"❌ Audit #{request_id} transaction reverted (tx {receipt.get('txHash')})")
            return False

        except ValueError as e:
            if "insufficient funds" in str(e):
                logger.critical(f"🚨 INSUFFICIENT FUNDS for audit #{request_id}! Fund your Oracle: {getattr(self.chain, 'oracle_address', '?')}")
            else:
                logger.error(f"❌ Error processing audit #{request_id}: {e}")
        except Exception as e:
            logger.error(f"❌ Error processing audit #{request_id}: {e}")
        return False
