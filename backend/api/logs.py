from flask import request, jsonify
from firebase_admin import firestore

from . import logs_bp
from middleware.auth_middleware import AuthMiddleware
from models.announcement_model import AnnouncementModel
from models.log_model import LogModel
from models.user_model import UserModel
from services.visibility_service import enrich_logs, visible_logs


@logs_bp.get("")
@AuthMiddleware.viewer_required
def list_logs(viewer):
    """
    GET /api/logs?q=<search>&task_id=<id>

    Activity relevant to the viewer's role, newest first.
    """
    db = firestore.client()
    resolver = UserModel(db).get_resolver()
    logs = visible_logs(
        resolver,
        viewer,
        LogModel(db).get_all_logs(),
        AnnouncementModel(db).get_announcements(),
    )

    task_id = (request.args.get("task_id") or "").strip()
    if task_id:
        logs = [l for l in logs if l.get("task_id") == task_id]

    logs = enrich_logs(resolver, logs, request.args.get("q", ""))
    return jsonify({"count": len(logs), "logs": logs}), 200
