from flask import jsonify
from firebase_admin import firestore

from . import notifications_bp
from middleware.auth_middleware import AuthMiddleware
from models.notification_model import NotificationModel


@notifications_bp.get("")
@AuthMiddleware.viewer_required
def list_notifications(viewer):
    """
    GET /api/notifications

    The viewer's own notifications, newest first.
    """
    notifications = NotificationModel(firestore.client()).get_for_user(viewer["id"])
    return jsonify({
        "count": len(notifications),
        "unread_count": sum(1 for n in notifications if not n.get("is_read")),
        "notifications": notifications,
    }), 200


@notifications_bp.patch("/<notification_id>/read")
@AuthMiddleware.viewer_required
def mark_read(viewer, notification_id):
    notification = NotificationModel(firestore.client()).mark_read(viewer, notification_id)
    return jsonify(notification), 200
