from flask import Blueprint

# Core blueprints
users_bp = Blueprint("users", __name__, url_prefix="/api/users")
tasks_bp = Blueprint("tasks", __name__, url_prefix="/api/tasks")
logs_bp = Blueprint("logs", __name__, url_prefix="/api/logs")
announcements_bp = Blueprint("announcements", __name__, url_prefix="/api/announcements")
dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api")
notifications_bp = Blueprint("notifications", __name__, url_prefix="/api/notifications")

# Import modules so routes attach
from . import users  # noqa
from . import tasks  # noqa
from . import logs  # noqa
from . import announcements  # noqa
from . import dashboard  # noqa
from . import notifications  # noqa

__all__ = [
    "users_bp",
    "tasks_bp",
    "logs_bp",
    "announcements_bp",
    "dashboard_bp",
    "notifications_bp",
]
