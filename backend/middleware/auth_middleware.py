from functools import wraps
from flask import request, jsonify
from firebase_admin import firestore

from models.user_model import UserModel
from utils.validators import Helpers, normalize_role


def get_viewer_id() -> str:
    """Extract current user ID from request headers or query params."""
    return (request.headers.get("X-User-Id") or request.args.get("viewer_id") or "").strip()


class AuthMiddleware:
    """Resolves the requesting user from the X-User-Id header.

    Sessions are handled upstream; this layer only turns the forwarded id
    into a user record and passes it to the view explicitly.
    """

    @staticmethod
    def viewer_required(f):
        """Decorator injecting the viewer's user record as the first argument"""
        @wraps(f)
        def decorated_function(*args, **kwargs):
            viewer_id = get_viewer_id()
            if not viewer_id:
                return jsonify(Helpers.build_error_response('Viewer ID required via X-User-Id header', 401)), 401

            viewer = UserModel(firestore.client()).get_user(viewer_id)
            if viewer is None:
                return jsonify(Helpers.build_error_response('Viewer not found', 404)), 404

            request.current_user_data = viewer
            return f(viewer, *args, **kwargs)

        return decorated_function


class RoleMiddleware:
    """Role-based access control middleware"""

    @staticmethod
    def require_role(*roles: str):
        """Decorator to require one of ``roles``; stack under viewer_required"""
        def decorator(f):
            @wraps(f)
            def decorated_function(viewer, *args, **kwargs):
                if normalize_role(viewer.get('role')) not in roles:
                    return jsonify(Helpers.build_error_response('Insufficient permissions', 403)), 403
                return f(viewer, *args, **kwargs)
            return decorated_function
        return decorator
