from unittest import mock

from trust_oracle.fulfillment import FulfillmentPipeline
from trust_oracle.security_scorer import ScanOutcome, SecurityScorer
from trust_oracle.tests.conftest import REQUESTER, TARGET, FakeChain, FakeScorer

FEE = 10 ** 16


def _pipeline(chain, scorer, store):
    return FulfillmentPipeline(scorer, chain, store, gas_limit=300000, chain_id=11155111)


def test_successful_fulfillment_records_certificate(chain, store, safe_outcome):
    scorer = FakeScorer(safe_outcome)

    ok = _pipeline(chain, scorer, store).fulfill(7, TARGET, REQUESTER, FEE)

    assert ok is True
    assert chain.fulfilled == [(7, 85, False, False, False, 300000)]
    assert scorer.calls == [(TARGET, 11155111)]
    scan = store.get_by_address(TARGET)
    assert scan.has_certificate is True
    assert scan.score == 85
    assert scan.block_number is None


def test_unavailable_scorer_writes_neutral_fallback(chain, store):
    ok = _pipeline(chain, FakeScorer(None), store).fulfill(8, TARGET, REQUESTER, FEE)

    assert ok is True
    assert chain.fulfilled == [(8, 50, False, False, False, 300000)]
    assert store.get_by_address(TARGET).score == 50


def test_honeypot_flags_reach_the_chain(chain, store):
    outcome = ScanOutcome(score=0, is_honeypot=True, is_mintable=True, owner_can_withdraw=True)

    _pipeline(chain, FakeScorer(outcome), store).fulfill(9, TARGET, REQUESTER, FEE)

    assert chain.fulfilled[0][:5] == (9, 0, True, True, True)


def test_reverted_transaction_is_not_recorded(chain, store, safe_outcome):
    chain.fulfill_status = 0

    ok = _pipeline(chain, FakeScorer(safe_outcome), store).fulfill(10, TARGET, REQUESTER, FEE)

    assert ok is False
    assert len(chain.fulfilled) == 1
    assert len(store) == 0


def test_chain_error_is_contained(store, safe_outcome):
    chain = FakeChain()
    chain.fulfill_error = ConnectionError("rpc down")

    ok = _pipeline(chain, FakeScorer(safe_outcome), store).fulfill(11, TARGET, REQUESTER, FEE)

    assert ok is False
    assert len(store) == 0


def test_insufficient_funds_is_contained(store, safe_outcome, caplog):
    chain = FakeChain()
    chain.fulfill_error = ValueError("insufficient funds for gas * price + value")

    ok = _pipeline(chain, FakeScorer(safe_outcome), store).fulfill(12, TARGET, REQUESTER, FEE)

    assert ok is False
    critical = [r.getMessage() for r in caplog.records if r.levelname == "CRITICAL"]
    assert len(critical) == 1
    assert "#12" in critical[0]


def test_scorer_crash_is_contained(chain, store):
    ok = _pipeline(chain, FakeScorer(error=RuntimeError("boom")), store).fulfill(13, TARGET, REQUESTER, FEE)

    assert ok is False
    assert chain.fulfilled == []
    assert len(store) == 0


def test_malformed_goplus_entry_writes_neutral_fallback(chain, store):
    response = mock.Mock()
    response.raise_for_status.return_value = None
    response.json.return_value = {"code": 1, "result": {TARGET.lower(): ["x"]}}
    session = mock.Mock()
    session.get.return_value = response
    scorer = SecurityScorer(base_url="https://goplus.test/token_security", timeout=10, session=session)

    ok = FulfillmentPipeline(scorer, chain, store, gas_limit=300000, chain_id=1).fulfill(1, TARGET, REQUESTER, FEE)

    assert ok is True
    assert chain.fulfilled == [(1, 50, False, False, False, 300000)]


def test_unreadable_fee_still_fulfills(chain, store, safe_outcome):
    pipeline = _pipeline(chain, FakeScorer(safe_outcome), store)

    assert pipeline.fulfill(14, TARGET, REQUESTER, -1) is True
    assert pipeline.fulfill(15, TARGET, REQUESTER, "abc") is True
    assert [f[0] for f in chain.fulfilled] == [14, 15]
