"""Academic year lookup endpoint."""
from __future__ import annotations
import logging

from flask import Blueprint, current_app, jsonify

from gateway.core.dynamics import DynamicsError

bp = Blueprint("academic_years", __name__, url_prefix="/api")

logger = logging.getLogger(__name__)


@bp.route("/academic-years", methods=["GET"])
def list_academic_years():
    """Active academic years as [{id, name}] sorted by name.

    Upstream error details are logged but never returned to the caller.
    """
    services = current_app.config["GATEWAY_SERVICES"]
    try:
        years = services.academic_years.list_active()
    except DynamicsError as exc:
        logger.error("Error fetching academic years: %s", exc, exc_info=True)
        return jsonify({"error": "Failed to fetch academic years"}), 500
    return jsonify(years), 200
