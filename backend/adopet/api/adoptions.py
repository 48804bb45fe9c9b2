"""
Adoption lifecycle API endpoints.

Tutor / adopter:
- POST /api/v1/pets/<pet_id>/adoption/nominate         - mark adopted, naming a candidate
- POST /api/v1/pets/<pet_id>/adoption/confirm          - nominee self-confirms
- GET  /api/v1/pets/<pet_id>/adoption                  - lifecycle projection
- GET  /api/v1/pets/feed                               - pets still open for adoption

Admin:
- POST /api/v1/admin/adoptions/<pet_id>/register       - create the adoption fact
- POST /api/v1/admin/adoptions/<pet_id>/confirm        - "confirmed by Adopet" badge
- POST /api/v1/admin/adoptions/<pet_id>/reject         - post-hoc rejection
- POST /api/v1/admin/adoptions/<pet_id>/reject-nomination
- POST /api/v1/admin/adoptions/reconcile               - run one escalation pass now

The acting user comes from the X-User-Id header; authentication and role
checks happen upstream.
"""

import uuid
from typing import Optional
from flask import Blueprint, current_app, request, jsonify

from adopet.errors import AdoptionError
from adopet.lifecycle import allowed_actions
from adopet.services.adoption_service import get_adoption_service


bp = Blueprint("adoptions", __name__, url_prefix="/api/v1")


class InvalidRequest(ValueError):
    pass


def _parse_uuid(raw: Optional[str], field: str) -> Optional[uuid.UUID]:
    if raw is None or raw == "":
        return None
    try:
        return uuid.UUID(str(raw))
    except ValueError:
        raise InvalidRequest(f"{field} must be a UUID")


def get_current_user_id() -> Optional[uuid.UUID]:
    """Get current user ID from request headers."""
    return _parse_uuid(request.headers.get("X-User-Id"), "X-User-Id")


def _require_user_id() -> uuid.UUID:
    user_id = get_current_user_id()
    if user_id is None:
        raise InvalidRequest("X-User-Id header is required")
    return user_id


def _service():
    return current_app.extensions.get("adoption_service") or get_adoption_service()


@bp.errorhandler(AdoptionError)
def handle_adoption_error(error: AdoptionError):
    return jsonify(error.to_dict()), error.http_status


@bp.errorhandler(InvalidRequest)
def handle_bad_request(error: InvalidRequest):
    return jsonify({"ok": False, "error": "bad_request", "message": str(error)}), 400


def _ok(view):
    return jsonify({"ok": True, "pet": view.to_dict()})


# =============================================================================
# Tutor / adopter
# =============================================================================

@bp.route("/pets/feed", methods=["GET"])
def open_feed():
    """Pets still open for adoption."""
    try:
        limit = int(request.args.get("limit", 50))
    except ValueError:
        raise InvalidRequest("limit must be an integer")
    if limit < 1:
        raise InvalidRequest("limit must be at least 1")
    limit = min(limit, 200)
    views = _service().list_open_feed(limit=limit)
    return jsonify({"ok": True, "pets": [view.to_dict() for view in views]})


@bp.route("/pets/<pet_id>/adoption", methods=["GET"])
def get_adoption(pet_id):
    view = _service().get_adoption_view(_parse_uuid(pet_id, "pet_id"))
    data = view.to_dict()
    data["allowed_actions"] = [action.__name__ for action in allowed_actions(view.state)]
    return jsonify({"ok": True, "pet": data})


@bp.route("/pets/<pet_id>/adoption/nominate", methods=["POST"])
def nominate(pet_id):
    data = request.get_json(silent=True) or {}
    view = _service().nominate_adopter(
        _parse_uuid(pet_id, "pet_id"),
        tutor_id=_require_user_id(),
        adopter_id=_parse_uuid(data.get("adopter_id"), "adopter_id"),
    )
    return _ok(view)


@bp.route("/pets/<pet_id>/adoption/confirm", methods=["POST"])
def confirm_by_adopter(pet_id):
    view = _service().confirm_by_adopter(
        _parse_uuid(pet_id, "pet_id"), adopter_id=_require_user_id()
    )
    return _ok(view)


# =============================================================================
# Admin
# =============================================================================

@bp.route("/admin/adoptions/<pet_id>/register", methods=["POST"])
def register(pet_id):
    data = request.get_json(silent=True) or {}
    view = _service().register_adoption(
        _parse_uuid(pet_id, "pet_id"),
        explicit_adopter_id=_parse_uuid(data.get("adopter_id"), "adopter_id"),
        admin_id=get_current_user_id(),
    )
    return _ok(view), 201


@bp.route("/admin/adoptions/<pet_id>/confirm", methods=["POST"])
def confirm_by_platform(pet_id):
    view = _service().confirm_by_platform(
        _parse_uuid(pet_id, "pet_id"), admin_id=get_current_user_id()
    )
    return _ok(view)


@bp.route("/admin/adoptions/<pet_id>/reject", methods=["POST"])
def reject_by_platform(pet_id):
    data = request.get_json(silent=True) or {}
    view = _service().reject_by_platform(
        _parse_uuid(pet_id, "pet_id"),
        reason=(data.get("reason") or "").strip() or None,
        admin_id=get_current_user_id(),
    )
    return _ok(view)


@bp.route("/admin/adoptions/<pet_id>/reject-nomination", methods=["POST"])
def reject_nomination(pet_id):
    data = request.get_json(silent=True) or {}
    view = _service().reject_nomination(
        _parse_uuid(pet_id, "pet_id"),
        reason=(data.get("reason") or "").strip() or None,
        admin_id=get_current_user_id(),
    )
    return _ok(view)


@bp.route("/admin/adoptions/reconcile", methods=["POST"])
def reconcile():
    processed = _service().reconcile()
    return jsonify({"ok": True, "processed": processed})
