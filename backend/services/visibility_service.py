"""
Role-based visibility rules for tasks, logs and announcements.
All functions are pure: they work on snapshots already loaded by the caller.
"""
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from services.hierarchy_service import HierarchyResolver, has_oversight
from utils.validators import (
    ACTIVE_STATUSES,
    CLOSED_STATUSES,
    ROLE_DIRECTOR,
    ROLE_LEAD,
    STATUS_DONE,
    STATUS_IN_PROGRESS,
    STATUS_TODO,
    Helpers,
    normalize_role,
)

TASK_VIEWS = ['all', 'active', 'missing', 'done']


def task_owner_ids(task: Dict[str, Any]) -> List[str]:
    return list(task.get('assigned_to_ids') or [])


def log_owner_ids(log: Dict[str, Any]) -> List[str]:
    return [log['user_id']] if log.get('user_id') else []


def announcement_visible(user: Dict[str, Any], announcement: Dict[str, Any]) -> bool:
    """Org-wide announcements reach everyone, targeted ones only their teams."""
    user = user or {}
    if has_oversight(user):
        return True
    targets = announcement.get('target_domains') or []
    if not targets:
        return True
    return bool(user.get('team')) and user['team'] in targets


def visible_announcements(user: Dict[str, Any], announcements: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return [a for a in announcements or [] if announcement_visible(user, a)]


def visible_tasks(resolver: HierarchyResolver, user: Dict[str, Any],
                  tasks: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Tasks with an assignee at or below the viewer, plus tasks the viewer assigned.

    A task assigned by a subordinate to someone outside the viewer's line
    stays hidden.
    """
    viewer_id = (user or {}).get('id')

    def _assigned_by_viewer(task):
        return bool(viewer_id) and task.get('assigned_by_id') == viewer_id

    return resolver.visible_to(user, tasks, task_owner_ids, also_visible=_assigned_by_viewer)


def visible_logs(resolver: HierarchyResolver, user: Dict[str, Any],
                 logs: Iterable[Dict[str, Any]],
                 announcements: Optional[Iterable[Dict[str, Any]]] = None) -> List[Dict[str, Any]]:
    """Logs written by the viewer or their subordinates.

    A log attached to an announcement is also visible when the viewer can
    see that announcement.
    """
    announcement_ids = {
        a.get('id') for a in visible_announcements(user, announcements or [])
    }

    def _about_visible_announcement(log):
        return bool(log.get('announcement_id')) and log['announcement_id'] in announcement_ids

    return resolver.visible_to(user, logs, log_owner_ids, also_visible=_about_visible_announcement)


def team_tasks(resolver: HierarchyResolver, user: Dict[str, Any],
               tasks: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Dashboard "team" panel for the viewer.

    Oversight roles get all active tasks. Leads get tasks with an assignee
    on their sub-team, Directors tasks with an assignee on their team,
    excluding the viewer themself as the matching assignee.
    """
    tasks = list(tasks or [])
    user = user or {}
    if resolver.has_oversight(user):
        return [t for t in tasks if t.get('status') in ACTIVE_STATUSES]

    role = normalize_role(user.get('role'))
    if role == ROLE_LEAD:
        field = 'sub_team'
    elif role == ROLE_DIRECTOR:
        field = 'team'
    else:
        return []

    unit = user.get(field)
    if not unit:
        return []

    def _on_unit(assignee_id):
        assignee = resolver.get_user(assignee_id)
        return bool(assignee) and assignee_id != user.get('id') and assignee.get(field) == unit

    return [t for t in tasks if any(_on_unit(a) for a in t.get('assigned_to_ids') or [])]


def is_missing(task: Dict[str, Any], now: Optional[datetime] = None) -> bool:
    """Past due and still open."""
    due = Helpers.parse_timestamp(task.get('due_date'))
    if not due:
        return False
    now = now or datetime.now(timezone.utc)
    return due < now and task.get('status') not in CLOSED_STATUSES


def filter_tasks_by_view(tasks: Iterable[Dict[str, Any]], view: str = 'all',
                         now: Optional[datetime] = None) -> List[Dict[str, Any]]:
    tasks = list(tasks or [])
    if view == 'active':
        return [t for t in tasks if t.get('status') in ACTIVE_STATUSES]
    if view == 'missing':
        return [t for t in tasks if is_missing(t, now)]
    if view == 'done':
        return [t for t in tasks if t.get('status') in CLOSED_STATUSES]
    return tasks


def status_chart(tasks: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
    tasks = list(tasks or [])
    return [
        {"name": status, "total": sum(1 for t in tasks if t.get('status') == status)}
        for status in (STATUS_TODO, STATUS_IN_PROGRESS, STATUS_DONE)
    ]


def enrich_logs(resolver: HierarchyResolver, logs: Iterable[Dict[str, Any]],
                query: str = '') -> List[Dict[str, Any]]:
    """Attach author names, apply an optional search, newest first."""
    query = (query or '').strip().lower()
    enriched = []
    for log in logs or []:
        author = resolver.get_user(log.get('user_id'))
        user_name = author.get('name') if author else None
        if query:
            in_message = query in (log.get('message') or '').lower()
            in_author = bool(user_name) and query in user_name.lower()
            if not (in_message or in_author):
                continue
        enriched.append({
            **log,
            "user_name": user_name or "System",
            "user_avatar": author.get('avatar') if author else None,
        })

    epoch = datetime.min.replace(tzinfo=timezone.utc)
    enriched.sort(key=lambda l: Helpers.parse_timestamp(l.get('timestamp')) or epoch, reverse=True)
    return enriched
