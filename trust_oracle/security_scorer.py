# trust_oracle/security_scorer.py
"""
Trust scoring on top of the GoPlus token-security API.

The score starts at 100 and each risk flag reported by GoPlus subtracts a
fixed penalty; the result is clamped to [0, 100]. When GoPlus cannot be
reached or has no data for the address, ``score_address`` returns None and
the caller picks its own fallback.
"""
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import requests

from trust_oracle.config import Config

logger = logging.getLogger(__name__)

# Scoring constants
BASE_SCORE = 100
MIN_SCORE = 0
MAX_SCORE = 100

HONEYPOT_PENALTY = 100
CLOSED_SOURCE_PENALTY = 20
PROXY_PENALTY = 10
MINTABLE_PENALTY = 15
TAKE_BACK_OWNERSHIP_PENALTY = 20
BUY_TAX_PENALTY = 15
SELL_TAX_PENALTY = 15

TAX_THRESHOLD = 0.1  # 10%


@dataclass(frozen=True)
class ScanOutcome:
    score: int
    is_honeypot: bool
    is_mintable: bool
    owner_can_withdraw: bool
    raw_data: Dict[str, Any] = field(default_factory=dict, compare=False)


# Neutral values written on-chain when the scorer is unavailable
FALLBACK_OUTCOME = ScanOutcome(score=50, is_honeypot=False, is_mintable=False, owner_can_withdraw=False)


def _flag(value) -> bool:
    return str(value) == "1"


def _tax(value) -> float:
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def compute_score(result: Dict[str, Any]) -> int:
    score = BASE_SCORE

    if _flag(result.get("is_honeypot")):
        score -= HONEYPOT_PENALTY
    if str(result.get("is_open_source")) == "0":
        score -= CLOSED_SOURCE_PENALTY
    if _flag(result.get("is_proxy")):
        score -= PROXY_PENALTY
    if _flag(result.get("is_mintable")):
        score -= MINTABLE_PENALTY
    if _flag(result.get("can_take_back_ownership")):
        score -= TAKE_BACK_OWNERSHIP_PENALTY
    if _tax(result.get("buy_tax")) > TAX_THRESHOLD:
        score -= BUY_TAX_PENALTY
    if _tax(result.get("sell_tax")) > TAX_THRESHOLD:
        score -= SELL_TAX_PENALTY

    return max(MIN_SCORE, min(MAX_SCORE, score))


def build_outcome(result: Dict[str, Any]) -> ScanOutcome:
    return ScanOutcome(
        score=compute_score(result),
        is_honeypot=_flag(result.get("is_honeypot")),
        is_mintable=_flag(result.get("is_mintable")),
        owner_can_withdraw=_flag(result.get("can_take_back_ownership")),
        raw_data=dict(result),
    )


class SecurityScorer:
    def __init__(self, base_url=None, timeout=None, default_chain_id=None, session=None):
        self.base_url = (base_url or Config.GOPLUS_API_URL).rstrip('/')
        self.timeout = timeout if timeout is not None else Config.SCORER_TIMEOUT_SECONDS
        self.default_chain_id = default_chain_id or Config.CHAIN_ID
        self.session = session or requests.Session()

    def _fetch_token_security(self, address: str, chain_id: int) -> Optional[Dict[str, Any]]:
        url = f"{self.base_url}/{chain_id}"
        try:
            response = self.session.get(url, params={"contract_addresses": address}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.RequestException as e:
            logger.error(f"GoPlus request failed for {address}: {e}")
            return None
        except ValueError as e:
            logger.error(f"GoPlus returned invalid JSON for {address}: {e}")
            return None

        if not isinstance(data, dict):
            return None
        result = (data.get("result") or {})
        if not isinstance(result, dict):
            return None
        entry = result.get(address.lower())
        if not isinstance(entry, dict) or not entry:
            return None
        return entry

    def score_address(self, address: str, chain_id: Optional[int] = None) -> Optional[ScanOutcome]:
        """Return a ScanOutcome, or None when GoPlus is unavailable or has no data."""
        chain_id = chain_id or self.default_chain_id
        result = self._fetch_token_security(address, chain_id)
        if not result:
            logger.warning(f"⚠️ No GoPlus data for {address}")
            return None
        return build_outcome(result)
