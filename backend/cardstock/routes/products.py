# Overview: Flask API routes for product catalog operations; partners only.

from flask import Blueprint, current_app, jsonify, request

from ..constants import ROLE_PARTNER
from ..decorators import require_auth, require_role
from ..exceptions import CardStockError
from ..extensions import db
from ..services import product_service


products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _error(exc: CardStockError):
    db.session.rollback()
    return jsonify(exc.to_dict()), exc.status_code


def _unexpected(message: str):
    db.session.rollback()
    current_app.logger.exception(message)
    return jsonify({"success": False, "message": "Internal server error"}), 500


def _parse_bool(value: str | None) -> bool | None:
    if value is None:
        return None
    return value.lower() in ("1", "true", "yes")


@products_bp.get("")
@require_auth
@require_role(ROLE_PARTNER)
def list_products():
    try:
        products = product_service.list_products(
            product_type=request.args.get("product_type"),
            brand=request.args.get("brand"),
            is_active=_parse_bool(request.args.get("is_active")),
            search=request.args.get("search"),
        )
        return jsonify({
            "success": True,
            "count": len(products),
            "products": [product.to_dict() for product in products],
        }), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to list products")


@products_bp.get("/brands")
@require_auth
@require_role(ROLE_PARTNER)
def list_brands():
    return jsonify({"success": True, "brands": product_service.list_brands()}), 200


@products_bp.get("/<product_id>")
@require_auth
@require_role(ROLE_PARTNER)
def get_product(product_id: str):
    try:
        stock = product_service.get_product_stock(product_id)
        return jsonify({
            "success": True,
            "product": stock["product"].to_dict(),
            "inventory": {
                "total_quantity": stock["total_quantity"],
                "stores": stock["stores"],
            },
        }), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to load product")


@products_bp.post("")
@require_auth
@require_role(ROLE_PARTNER)
def create_product():
    data = request.get_json(silent=True)
    try:
        product = product_service.create_product(data)
        return jsonify({"success": True, "product": product.to_dict()}), 201
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to create product")


@products_bp.put("/<product_id>")
@require_auth
@require_role(ROLE_PARTNER)
def update_product(product_id: str):
    data = request.get_json(silent=True)
    try:
        product = product_service.update_product(product_id, data)
        return jsonify({"success": True, "product": product.to_dict()}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to update product")


@products_bp.delete("/<product_id>")
@require_auth
@require_role(ROLE_PARTNER)
def delete_product(product_id: str):
    try:
        product_service.delete_product(product_id)
        return jsonify({"success": True, "message": "Product deactivated successfully"}), 200
    except CardStockError as exc:
        return _error(exc)
    except Exception:
        return _unexpected("Failed to delete product")
