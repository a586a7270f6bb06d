# Overview: Flask API routes for inventory operations; parses input and returns JSON responses.

from flask import Blueprint, current_app, g, jsonify, request

from ..constants import ROLE_PARTNER, ROLE_STORE_MANAGER
from ..decorators import require_auth, require_role
from ..exceptions import CardStockError
from ..extensions import db
from ..permissions import Operation
from ..services import inventory_service, permission_service


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")


def _error(exc: CardStockError):
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


def _unexpected(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"success": False, "message": "Internal server error"}), 500


@inventory_bp.post("/check-duplicate")
@require_auth
def check_duplicate():
    """
    Pre-flight check before adding stock.

    Request body: {"store_id", "product_id", "location"}

    Returns:
        200: {"exact_match": summary|null, "different_location": summary|null}
        400: missing or malformed fields
        403: store is not one the actor may view
    """
    data = request.get_json(silent=True) or {}
    try:
        if data.get("store_id") is not None:
            permission_service.authorize(
                g.current_user,
                Operation.INVENTORY_VIEW_STORE,
                store_ids=(data.get("store_id"),),
                message="Access denied: you can only access your assigned store",
            )
        result = inventory_service.check_duplicate(
            data.get("store_id"),
            data.get("product_id"),
            data.get("location"),
        )
        return jsonify({"success": True, **result}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Duplicate check failed")


@inventory_bp.get("")
@require_auth
def list_inventory():
    try:
        permission_service.authorize(g.current_user, Operation.INVENTORY_VIEW_ALL)
        records = inventory_service.list_inventory(location=request.args.get("location"))
        return jsonify({
            "success": True,
            "count": len(records),
            "inventory": [record.to_dict() for record in records],
        }), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to list inventory")


@inventory_bp.get("/store/<store_id>")
@require_auth
def list_store_inventory(store_id: str):
    try:
        permission_service.authorize(
            g.current_user,
            Operation.INVENTORY_VIEW_STORE,
            store_ids=(store_id,),
            message="Access denied: you can only access your assigned store",
        )
        records = inventory_service.list_store_inventory(store_id, location=request.args.get("location"))
        return jsonify({
            "success": True,
            "count": len(records),
            "inventory": [record.to_dict() for record in records],
        }), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to list store inventory")


@inventory_bp.get("/low-stock")
@require_auth
@require_role(ROLE_PARTNER, ROLE_STORE_MANAGER)
def low_stock():
    """Partners may pass ?store_id=; managers always get their own store."""
    user = g.current_user
    store_id = request.args.get("store_id") if user.role == ROLE_PARTNER else user.assigned_store_id
    try:
        if user.role != ROLE_PARTNER:
            permission_service.authorize(user, Operation.INVENTORY_VIEW_STORE, store_ids=(store_id,))
        records = inventory_service.find_low_stock(store_id=store_id)
        return jsonify({
            "success": True,
            "count": len(records),
            "inventory": [record.to_dict() for record in records],
        }), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to list low stock")


@inventory_bp.get("/containers")
@require_auth
def containers_with_card():
    """?product_id= required; ?store_id= optional for partners."""
    user = g.current_user
    store_id = request.args.get("store_id") if user.role == ROLE_PARTNER else user.assigned_store_id
    try:
        if user.role != ROLE_PARTNER:
            permission_service.authorize(user, Operation.INVENTORY_VIEW_STORE, store_ids=(store_id,))
        records = inventory_service.find_containers_with_card(request.args.get("product_id"), store_id=store_id)
        return jsonify({
            "success": True,
            "count": len(records),
            "inventory": [record.to_dict() for record in records],
        }), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to search containers")


@inventory_bp.post("")
@require_auth
@require_role(ROLE_PARTNER, ROLE_STORE_MANAGER)
def create_inventory():
    """
    Create inventory or merge into the record at the same store/product/location.

    Request body:
    {
        "store_id": str,
        "product_id": str,
        "quantity": int,
        "location": "floor" | "back",
        "min_stock_level": int (optional),
        "notes": str (optional)
    }

    Returns:
        201: created
        200: merged into existing record
        400: invalid input / insufficient capacity
        403: not this actor's store
        404: store or product not found
    """
    data = request.get_json(silent=True) or {}
    try:
        permission_service.authorize(
            g.current_user,
            Operation.INVENTORY_MANAGE,
            store_ids=(data.get("store_id"),),
            message="Access denied: you can only manage your assigned store",
        )
        result = inventory_service.create_inventory(
            store_id=data.get("store_id"),
            product_id=data.get("product_id"),
            quantity=data.get("quantity"),
            location=data.get("location"),
            min_stock_level=data.get("min_stock_level"),
            notes=data.get("notes"),
        )
        record = result["inventory"]
        if result["merged"]:
            current_app.logger.info(
                "Merged %s units into inventory %s (store %s)",
                data.get("quantity"), record.id, record.store_id,
            )
        return jsonify({
            "success": True,
            "merged": result["merged"],
            "message": result["message"],
            "inventory": record.to_dict(),
        }), 200 if result["merged"] else 201
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to create inventory")


@inventory_bp.post("/containers")
@require_auth
@require_role(ROLE_PARTNER, ROLE_STORE_MANAGER)
def create_container():
    data = request.get_json(silent=True) or {}
    try:
        permission_service.authorize(
            g.current_user,
            Operation.INVENTORY_MANAGE,
            store_ids=(data.get("store_id"),),
            message="Access denied: you can only manage your assigned store",
        )
        record = inventory_service.create_card_container(
            store_id=data.get("store_id"),
            container_type=data.get("container_type"),
            container_name=data.get("container_name"),
            location=data.get("location"),
            container_unit_size=data.get("container_unit_size", 0),
            card_inventory=data.get("card_inventory"),
            min_stock_level=data.get("min_stock_level"),
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "inventory": record.to_dict()}), 201
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to create card container")


@inventory_bp.put("/containers/<inventory_id>")
@require_auth
@require_role(ROLE_PARTNER, ROLE_STORE_MANAGER)
def update_container(inventory_id: str):
    data = request.get_json(silent=True) or {}
    try:
        existing = inventory_service.get_inventory(inventory_id)
        permission_service.authorize(
            g.current_user,
            Operation.INVENTORY_MANAGE,
            store_ids=(existing.store_id,),
            message="Access denied: you can only manage your assigned store",
        )
        record = inventory_service.update_card_container(
            inventory_id,
            container_name=data.get("container_name"),
            container_unit_size=data.get("container_unit_size"),
            card_inventory=data.get("card_inventory"),
        )
        return jsonify({"success": True, "inventory": record.to_dict()}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to update card container")


@inventory_bp.put("/<inventory_id>")
@require_auth
@require_role(ROLE_PARTNER, ROLE_STORE_MANAGER)
def update_inventory(inventory_id: str):
    data = request.get_json(silent=True) or {}
    try:
        existing = inventory_service.get_inventory(inventory_id)
        permission_service.authorize(
            g.current_user,
            Operation.INVENTORY_MANAGE,
            store_ids=(existing.store_id,),
            message="Access denied: you can only manage your assigned store",
        )
        record = inventory_service.update_inventory(
            inventory_id,
            quantity=data.get("quantity"),
            location=data.get("location"),
            min_stock_level=data.get("min_stock_level"),
            notes=data.get("notes"),
        )
        return jsonify({"success": True, "inventory": record.to_dict()}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to update inventory")


@inventory_bp.delete("/<inventory_id>")
@require_auth
@require_role(ROLE_PARTNER, ROLE_STORE_MANAGER)
def delete_inventory(inventory_id: str):
    try:
        existing = inventory_service.get_inventory(inventory_id)
        permission_service.authorize(
            g.current_user,
            Operation.INVENTORY_MANAGE,
            store_ids=(existing.store_id,),
            message="Access denied: you can only manage your assigned store",
        )
        inventory_service.delete_inventory(inventory_id)
        return jsonify({"success": True, "message": "Inventory deleted successfully"}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to delete inventory")
