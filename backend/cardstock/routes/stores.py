# Overview: Flask API routes for stores operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..constants import ROLE_PARTNER, ROLE_STORE_MANAGER
from ..decorators import require_auth, require_role
from ..exceptions import CardStockError
from ..extensions import db
from ..permissions import Operation
from ..services import permission_service, store_service


stores_bp = Blueprint("stores", __name__, url_prefix="/api/stores")


def _error(exc: CardStockError):
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


def _unexpected(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"success": False, "message": "Internal server error"}), 500


@stores_bp.get("")
@require_auth
def list_stores():
    include_inactive = (
        g.current_user.role == ROLE_PARTNER
        and request.args.get("include_inactive", "").lower() in ("1", "true", "yes")
    )
    stores = store_service.list_stores(include_inactive=include_inactive)
    return jsonify({
        "success": True,
        "count": len(stores),
        "stores": [store.to_dict() for store in stores],
    }), 200


@stores_bp.post("")
@require_auth
@require_role(ROLE_PARTNER)
def create_store():
    data = request.get_json(silent=True)
    try:
        store = store_service.create_store(data)
        return jsonify({"success": True, "store": store.to_dict()}), 201
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to create store")


@stores_bp.get("/<store_id>")
@require_auth
def get_store(store_id: str):
    try:
        permission_service.authorize(
            g.current_user,
            Operation.STORE_VIEW,
            store_ids=(store_id,),
            message="Access denied: you can only access your assigned store",
        )
        store = store_service.get_store(store_id)
        return jsonify({"success": True, "store": store.to_dict()}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to load store")


@stores_bp.put("/<store_id>")
@require_auth
@require_role(ROLE_PARTNER, ROLE_STORE_MANAGER)
def update_store(store_id: str):
    data = request.get_json(silent=True)
    try:
        permission_service.authorize(
            g.current_user,
            Operation.STORE_UPDATE,
            store_ids=(store_id,),
            message="Access denied: you can only update your assigned store",
        )
        store = store_service.update_store(store_id, data)
        return jsonify({"success": True, "store": store.to_dict()}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to update store")


@stores_bp.delete("/<store_id>")
@require_auth
@require_role(ROLE_PARTNER)
def delete_store(store_id: str):
    try:
        store_service.delete_store(store_id)
        return jsonify({"success": True, "message": "Store deleted successfully"}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to delete store")
