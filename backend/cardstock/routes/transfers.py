# backend/cardstock/routes/transfers.py
"""
Inter-store transfer request API routes.

Employees have no access to transfers; store-level checks are made by
transfer_service through permission_service.
"""
from flask import Blueprint, current_app, g, jsonify, request

from ..constants import ROLE_PARTNER, ROLE_STORE_MANAGER
from ..decorators import require_auth, require_role
from ..exceptions import CardStockError
from ..extensions import db
from ..services import transfer_service


transfers_bp = Blueprint("transfers", __name__, url_prefix="/api/transfer-requests")


def _error(exc: CardStockError):
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


def _unexpected(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"success": False, "message": "Internal server error"}), 500


@transfers_bp.post("")
@require_auth
@require_role(ROLE_STORE_MANAGER, ROLE_PARTNER)
def create_transfer_request():
    """
    Create a transfer request in open status.

    Request body:
    {
        "from_store_id": str,
        "to_store_id": str,
        "items": [
            {"inventory_id": str, "requested_quantity": int},
            {"inventory_id": str, "card_items": [{"product_id": str, "quantity": int}]}
        ],
        "notes": str (optional)
    }

    Returns:
        201: Request created
        400: Invalid request / insufficient quantity
        403: Actor not attached to either store
        404: Store or inventory not found
    """
    data = request.get_json(silent=True) or {}
    try:
        transfer = transfer_service.create_transfer_request(
            g.current_user,
            data.get("from_store_id"),
            data.get("to_store_id"),
            data.get("items"),
            notes=data.get("notes"),
        )
        current_app.logger.info(
            "Transfer request %s created by %s", transfer.request_number, g.current_user.username
        )
        return jsonify({"success": True, "transfer_request": transfer.to_dict()}), 201
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to create transfer request")


@transfers_bp.get("")
@require_auth
@require_role(ROLE_STORE_MANAGER, ROLE_PARTNER)
def list_transfer_requests():
    try:
        transfers = transfer_service.list_transfer_requests(
            g.current_user,
            status=request.args.get("status"),
            store_id=request.args.get("store_id"),
        )
        return jsonify({
            "success": True,
            "count": len(transfers),
            "transfer_requests": [transfer.to_dict() for transfer in transfers],
        }), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to list transfer requests")


@transfers_bp.get("/counts")
@require_auth
@require_role(ROLE_STORE_MANAGER, ROLE_PARTNER)
def transfer_counts():
    try:
        counts = transfer_service.count_by_status(g.current_user, store_id=request.args.get("store_id"))
        return jsonify({"success": True, "counts": counts}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to count transfer requests")


@transfers_bp.get("/<request_id>")
@require_auth
@require_role(ROLE_STORE_MANAGER, ROLE_PARTNER)
def get_transfer_request(request_id: str):
    try:
        transfer = transfer_service.get_transfer_request(g.current_user, request_id)
        return jsonify({"success": True, "transfer_request": transfer.to_dict()}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to load transfer request")


@transfers_bp.patch("/<request_id>/status")
@require_auth
@require_role(ROLE_STORE_MANAGER, ROLE_PARTNER)
def update_transfer_status(request_id: str):
    """
    Move a request through its workflow.

    Request body: {"status": str, "close_reason": str (optional)}

    Returns:
        200: Status updated (inventory moved where the step requires it)
        400: Invalid transition / insufficient quantity / insufficient capacity
        403: Actor may not take this step
        404: Request not found
    """
    data = request.get_json(silent=True) or {}
    try:
        transfer = transfer_service.update_transfer_status(
            g.current_user,
            request_id,
            data.get("status"),
            close_reason=data.get("close_reason"),
        )
        current_app.logger.info(
            "Transfer request %s moved to %s by %s",
            transfer.request_number, transfer.status, g.current_user.username,
        )
        return jsonify({"success": True, "transfer_request": transfer.to_dict()}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to update transfer request status")


@transfers_bp.delete("/<request_id>")
@require_auth
@require_role(ROLE_PARTNER)
def delete_transfer_request(request_id: str):
    try:
        transfer = transfer_service.delete_transfer_request(g.current_user, request_id)
        current_app.logger.info("Transfer request %s deleted", transfer.request_number)
        return jsonify({"success": True, "message": "Transfer request deleted successfully"}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to delete transfer request")
