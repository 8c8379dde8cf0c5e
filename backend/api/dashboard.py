from flask import jsonify
from firebase_admin import firestore

from . import dashboard_bp
from middleware.auth_middleware import AuthMiddleware
from models.announcement_model import AnnouncementModel
from models.log_model import LogModel
from models.task_model import TaskModel
from models.user_model import UserModel
from services.visibility_service import (
    enrich_logs,
    status_chart,
    team_tasks,
    visible_announcements,
    visible_logs,
)
from utils.validators import STATUS_TODO

RECENT_LOG_COUNT = 5


@dashboard_bp.get("/dashboard")
@AuthMiddleware.viewer_required
def dashboard(viewer):
    """
    GET /api/dashboard

    Headers:
        X-User-Id: viewer's user ID

    Returns:
        {
            "user": {...},
            "my_tasks": [...],
            "team_tasks": [...],
            "recent_logs": [...],
            "announcements": [...],
            "chart": [{"name": "To Do", "total": 3}, ...],
            "statistics": {...}
        }
    """
    db = firestore.client()
    resolver = UserModel(db).get_resolver()
    tasks = TaskModel(db).get_all_tasks()
    announcements = AnnouncementModel(db).get_announcements()

    my_tasks = [t for t in tasks if viewer["id"] in (t.get("assigned_to_ids") or [])]
    team = team_tasks(resolver, viewer, tasks)
    logs = visible_logs(resolver, viewer, LogModel(db).get_all_logs(), announcements)

    return jsonify({
        "user": {k: viewer.get(k) for k in ("id", "name", "role", "team", "sub_team")},
        "my_tasks": my_tasks,
        "team_tasks": team,
        "recent_logs": enrich_logs(resolver, logs)[:RECENT_LOG_COUNT],
        "announcements": visible_announcements(viewer, announcements),
        "chart": status_chart(tasks),
        "statistics": {
            "my_tasks_count": len(my_tasks),
            "my_pending_count": sum(1 for t in my_tasks if t.get("status") == STATUS_TODO),
            "team_tasks_count": len(team),
        },
    }), 200
