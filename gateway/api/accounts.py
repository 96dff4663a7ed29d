"""Account creation endpoints (teacher, student, parent).

Each handler validates the JSON body, delegates to the account service and
shapes the response:

    201 {"message": "...", "data": {"guid": "..."}}
    400 {"error": "Missing required fields..."}
    500 {"error": "Failed to create <kind>", "details": "<upstream message>"}
"""

from __future__ import annotations
import logging
from typing import Any, Callable

from flask import Blueprint, current_app, jsonify, request

from gateway.core.dynamics import DynamicsError
from gateway.core.parent_links import DEFAULT_SCOPE
from gateway.core.validators import ValidationError

bp = Blueprint("accounts", __name__, url_prefix="/api")

logger = logging.getLogger(__name__)

SESSION_HEADER = "X-Session-Id"


def _services():
    return current_app.config["GATEWAY_SERVICES"]


def _json_body() -> dict[str, Any]:
    body = request.get_json(silent=True)
    return body if isinstance(body, dict) else {}


def _link_scope() -> str:
    """Parent-link scope for this request; shared default when no header is sent."""
    return request.headers.get(SESSION_HEADER, "").strip() or DEFAULT_SCOPE


def _create(kind: str, action: Callable[[dict[str, Any]], dict[str, str]]):
    payload = _json_body()
    logger.info("Request body received for %s: %s", kind, payload)

    try:
        result = action(payload)
    except ValidationError as exc:
        logger.info("Missing fields for %s: %s", kind, exc.missing)
        return jsonify({"error": exc.message}), 400
    except DynamicsError as exc:
        logger.error("Error processing %s creation: %s", kind, exc, exc_info=True)
        return jsonify({"error": f"Failed to create {kind}", "details": getattr(exc, "message", str(exc))}), 500

    return jsonify({"message": f"{kind.capitalize()} created successfully", "data": result}), 201


@bp.route("/create-account-teacher", methods=["POST"])
def create_teacher():
    return _create("teacher", _services().accounts.create_teacher)


@bp.route("/create-account-student", methods=["POST"])
def create_student():
    scope = _link_scope()
    return _create("student", lambda payload: _services().accounts.create_student(payload, scope))


@bp.route("/create-account-parent", methods=["POST"])
def create_parent():
    scope = _link_scope()
    return _create("parent", lambda payload: _services().accounts.create_parent(payload, scope))
