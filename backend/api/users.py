from flask import request, jsonify
from firebase_admin import firestore

from . import users_bp
from middleware.auth_middleware import AuthMiddleware, RoleMiddleware
from models.user_model import UserModel
from utils.validators import (
    ANNOUNCER_ROLES,
    OVERSIGHT_ROLES,
    ROLE_DIRECTOR,
    ROLE_LEAD,
    ROLE_MEMBER,
    VALID_TEAMS,
)

# Display order of lead cards in the directory
LEAD_TEAM_ORDER = ['Technology', 'Corporate', 'Creatives']


def _public_user(user):
    return {
        "id": user.get("id"),
        "name": user.get("name"),
        "email": user.get("email"),
        "avatar": user.get("avatar"),
        "role": user.get("role"),
        "team": user.get("team"),
        "sub_team": user.get("sub_team"),
    }


def _matches(user, query):
    fields = (user.get("name"), user.get("role"), user.get("team"), user.get("sub_team"))
    return any(query in (f or "").lower() for f in fields)


def group_directory(users):
    """Split users into the directory sections, each sorted by name."""
    by_name = lambda u: (u.get("name") or "").lower()

    def _lead_key(u):
        team = u.get("team")
        rank = LEAD_TEAM_ORDER.index(team) if team in LEAD_TEAM_ORDER else len(LEAD_TEAM_ORDER)
        return rank, by_name(u)

    members = sorted((u for u in users if u.get("role") == ROLE_MEMBER), key=by_name)
    return {
        "presidium": sorted((u for u in users if u.get("role") in OVERSIGHT_ROLES), key=by_name),
        "directors": sorted((u for u in users if u.get("role") == ROLE_DIRECTOR), key=by_name),
        "leads": sorted((u for u in users if u.get("role") == ROLE_LEAD), key=_lead_key),
        "members": {team: [u for u in members if u.get("team") == team] for team in VALID_TEAMS},
    }


@users_bp.get("")
@AuthMiddleware.viewer_required
def list_users(viewer):
    """
    GET /api/users?q=<search>

    Organization directory, grouped by rank. ``q`` matches name, role,
    team or sub-team case-insensitively.
    """
    db = firestore.client()
    query = (request.args.get("q") or "").strip().lower()

    users = [_public_user(u) for u in UserModel(db).get_all_users()]
    if query:
        users = [u for u in users if _matches(u, query)]

    return jsonify({"count": len(users), **group_directory(users)}), 200


@users_bp.get("/<user_id>")
@AuthMiddleware.viewer_required
def get_user(viewer, user_id):
    db = firestore.client()
    user = UserModel(db).get_user(user_id)
    if user is None:
        return jsonify({"error": "User not found"}), 404
    return jsonify(_public_user(user)), 200


@users_bp.get("/<user_id>/subordinates")
@AuthMiddleware.viewer_required
def list_subordinates(viewer, user_id):
    """
    GET /api/users/<user_id>/subordinates

    Everyone transitively reporting to ``user_id``. Viewers may inspect
    themselves and anyone inside their own visibility set.
    """
    db = firestore.client()
    resolver = UserModel(db).get_resolver()

    if resolver.get_user(user_id) is None:
        return jsonify({"error": "User not found"}), 404

    if not resolver.has_oversight(viewer) and user_id not in resolver.visible_user_ids(viewer):
        return jsonify({"error": "You can only view your own reporting line"}), 403

    subordinate_ids = sorted(resolver.subordinates_of(user_id))
    return jsonify({
        "user_id": user_id,
        "subordinate_ids": subordinate_ids,
        "subordinates": [_public_user(resolver.get_user(uid)) for uid in subordinate_ids],
    }), 200


@users_bp.post("")
@AuthMiddleware.viewer_required
@RoleMiddleware.require_role(*OVERSIGHT_ROLES)
def create_user(viewer):
    """Seed a user record (oversight roles only)."""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    user = UserModel(db).create_user(payload)
    return jsonify({"user": _public_user(user)}), 201


@users_bp.put("/<user_id>")
@AuthMiddleware.viewer_required
@RoleMiddleware.require_role(*ANNOUNCER_ROLES)
def update_user(viewer, user_id):
    """
    PUT /api/users/<user_id>
    Body: any of {name, email, role, team, sub_team, avatar}
    """
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    user = UserModel(db).update_user(viewer, user_id, payload)
    return jsonify({"user": _public_user(user)}), 200
