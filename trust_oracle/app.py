# trust_oracle/app.py
from datetime import datetime, timezone

from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_socketio import SocketIO
from web3 import Web3

from trust_oracle.scan_store import DEFAULT_RECENT_LIMIT
from trust_oracle.utils.addresses import is_valid_address

socketio = SocketIO(cors_allowed_origins="*")


class InvalidAddress(ValueError):
    pass


def _error(message, status=500):
    return jsonify({"success": False, "error": message}), status


def _require_address(address):
    if not is_valid_address(address):
        raise InvalidAddress(f"Invalid address: {address}")
    return address


def _parse_limit(raw):
    try:
        limit = int(raw)
    except (TypeError, ValueError):
        return DEFAULT_RECENT_LIMIT
    return limit if limit > 0 else DEFAULT_RECENT_LIMIT


def create_app(store, chain=None):
    """
    Build the read API over ``store`` (and ``chain`` for on-chain views).
    Every append to the store is pushed to dashboards as a ``new_scan`` event.
    """
    app = Flask(__name__)
    CORS(app)
    socketio.init_app(app)

    def _push_scan(scan):
        socketio.emit('new_scan', scan.to_dict())

    store.add_listener(_push_scan)

    @app.errorhandler(InvalidAddress)
    def handle_invalid_address(e):
        return _error(str(e), 400)

    @app.errorhandler(404)
    def handle_not_found(e):
        return _error("Not found", 404)

    @app.route('/api/recent-scans', methods=['GET'])
    def recent_scans():
        try:
            limit = _parse_limit(request.args.get('limit'))
            scans = store.get_recent(limit)
            return jsonify({
                "success": True,
                "count": len(scans),
                "contracts": [s.to_dict() for s in scans],
            })
        except Exception as e:
            app.logger.exception("Error in /api/recent-scans: %s", e)
            return _error(str(e))

    @app.route('/api/contract-status/<address>', methods=['GET'])
    def contract_status(address):
        _require_address(address)
        try:
            token_id = chain.token_of(address) if chain is not None else 0
            has_sbt = token_id > 0

            audit_data = None
            if has_sbt:
                audit_data = chain.get_audit_data(token_id)
            else:
                scan = store.get_by_address(address)
                if scan:
                    audit_data = {
                        "score": scan.score,
                        "isHoneypot": scan.is_honeypot,
                        "isMintable": scan.is_mintable,
                        "ownerCanWithdraw": scan.owner_can_withdraw,
                        "scannedAt": scan.scanned_at,
                    }

            return jsonify({"success": True, "address": address, "hasSBT": has_sbt, "auditData": audit_data})
        except Exception as e:
            app.logger.error(f"Error in /api/contract-status/{address}: {e}")
            return _error(str(e))

    @app.route('/api/fee/<address>', methods=['GET'])
    def fee(address):
        _require_address(address)
        if chain is None:
            return _error("Chain client not configured", 503)
        try:
            fee_wei = chain.calculate_fee(address)
            return jsonify({
                "success": True,
                "address": address,
                "fee": str(Web3.from_wei(fee_wei, 'ether')),
                "feeWei": str(fee_wei),
            })
        except Exception as e:
            app.logger.error(f"Error in /api/fee/{address}: {e}")
            return _error(str(e))

    @app.route('/api/stats', methods=['GET'])
    def stats():
        try:
            return jsonify({"success": True, "stats": store.get_stats()})
        except Exception as e:
            return _error(str(e))

    @app.route('/api/health', methods=['GET'])
    def health():
        return jsonify({
            "success": True,
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "database": "in-memory",
            **store.health(),
        })

    return app
