from flask import request, jsonify
from firebase_admin import firestore

from . import tasks_bp
from middleware.auth_middleware import AuthMiddleware
from models.task_model import TaskModel
from models.user_model import UserModel
from services.visibility_service import (
    TASK_VIEWS,
    filter_tasks_by_view,
    visible_tasks,
)
from utils.errors import NotFoundError


def _brief(resolver, uid):
    user = resolver.get_user(uid)
    if not user:
        return None
    return {"id": uid, "name": user.get("name"), "avatar": user.get("avatar")}


def enrich_task(resolver, task):
    """Attach assignee and assigner display records."""
    assignees = [a for a in (_brief(resolver, uid) for uid in task.get("assigned_to_ids") or []) if a]
    return {
        **task,
        "assignees": assignees,
        "assigner": _brief(resolver, task.get("assigned_by_id")),
    }


def _visible_task(db, viewer, task_id):
    """Load a task the viewer may see, with the resolver used to check it.

    Hidden tasks read as missing so ids do not leak across teams.
    """
    task = TaskModel(db).get_task(task_id)
    resolver = UserModel(db).get_resolver()
    if task is None or not visible_tasks(resolver, viewer, [task]):
        raise NotFoundError("Task not found")
    return task, resolver


def _assignee_names(resolver, payload):
    """Normalize ``assigned_to_ids`` in place and return display names.

    Raises ValueError naming any id with no user record.
    """
    assignee_ids = payload.get("assigned_to_ids") or []
    if not isinstance(assignee_ids, list):
        # Left for the model's validation to reject
        return None

    assignee_ids = list(dict.fromkeys(
        uid.strip() for uid in assignee_ids if isinstance(uid, str) and uid.strip()
    ))
    unknown = [uid for uid in assignee_ids if resolver.get_user(uid) is None]
    if unknown:
        raise ValueError(f"Unknown assignees: {', '.join(unknown)}")
    payload["assigned_to_ids"] = assignee_ids
    return [resolver.get_user(uid).get("name") or uid for uid in assignee_ids]


@tasks_bp.get("")
@AuthMiddleware.viewer_required
def list_tasks(viewer):
    """
    GET /api/tasks?filter=all|active|missing|done

    Tasks visible to the viewer through the reporting line.
    """
    view = (request.args.get("filter") or "all").strip().lower()
    if view not in TASK_VIEWS:
        return jsonify({"error": f"filter must be one of: {', '.join(TASK_VIEWS)}"}), 400

    db = firestore.client()
    resolver = UserModel(db).get_resolver()
    tasks = visible_tasks(resolver, viewer, TaskModel(db).get_all_tasks())
    tasks = filter_tasks_by_view(tasks, view)

    return jsonify({
        "filter": view,
        "count": len(tasks),
        "tasks": [enrich_task(resolver, t) for t in tasks],
    }), 200


@tasks_bp.get("/<task_id>")
@AuthMiddleware.viewer_required
def get_task(viewer, task_id):
    """Task detail with its comments and subtasks."""
    db = firestore.client()
    task, resolver = _visible_task(db, viewer, task_id)
    model = TaskModel(db)

    comments = []
    for comment in model.get_comments(task_id):
        author = resolver.get_user(comment.get("user_id"))
        comments.append({**comment, "user_name": author.get("name") if author else "System"})

    return jsonify({
        **enrich_task(resolver, task),
        "comments": comments,
        "subtasks": model.get_subtasks(task_id),
    }), 200


@tasks_bp.post("")
@AuthMiddleware.viewer_required
def create_task(viewer):
    """
    POST /api/tasks
    Body: {title, description?, assigned_to_ids[], due_date, links[]?}
    """
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    names = _assignee_names(UserModel(db).get_resolver(), payload)

    task = TaskModel(db).create_task(viewer, payload, assignee_names=names)
    return jsonify(task), 201


@tasks_bp.put("/<task_id>")
@AuthMiddleware.viewer_required
def update_task(viewer, task_id):
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    _assignee_names(UserModel(db).get_resolver(), payload)
    task = TaskModel(db).update_task(viewer, task_id, payload)
    return jsonify(task), 200


@tasks_bp.patch("/<task_id>/status")
@AuthMiddleware.viewer_required
def update_task_status(viewer, task_id):
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    task = TaskModel(db).update_status(viewer, task_id, payload.get("status"))
    return jsonify(task), 200


@tasks_bp.delete("/<task_id>")
@AuthMiddleware.viewer_required
def delete_task(viewer, task_id):
    db = firestore.client()
    TaskModel(db).delete_task(viewer, task_id)
    return jsonify({"message": "Task deleted successfully"}), 200


@tasks_bp.post("/<task_id>/links")
@AuthMiddleware.viewer_required
def add_link(viewer, task_id):
    """Body: {link}"""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    task = TaskModel(db).add_link(viewer, task_id, payload.get("link"))
    return jsonify(task), 200


@tasks_bp.post("/<task_id>/comments")
@AuthMiddleware.viewer_required
def add_comment(viewer, task_id):
    """Anyone who can see the task may comment on it. Body: {message}"""
    db = firestore.client()
    _visible_task(db, viewer, task_id)
    payload = request.get_json(force=True, silent=True) or {}
    comment = TaskModel(db).add_comment(viewer, task_id, payload.get("message"))
    return jsonify(comment), 201


@tasks_bp.post("/<task_id>/subtasks")
@AuthMiddleware.viewer_required
def add_subtask(viewer, task_id):
    """Body: {title}"""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    subtask = TaskModel(db).add_subtask(viewer, task_id, payload.get("title"))
    return jsonify(subtask), 201


@tasks_bp.put("/<task_id>/subtasks/order")
@AuthMiddleware.viewer_required
def reorder_subtasks(viewer, task_id):
    """Body: {subtask_ids[]} in the new order"""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    subtasks = TaskModel(db).reorder_subtasks(viewer, task_id, payload.get("subtask_ids"))
    return jsonify({"subtasks": subtasks}), 200


@tasks_bp.patch("/<task_id>/subtasks/<subtask_id>")
@AuthMiddleware.viewer_required
def toggle_subtask(viewer, task_id, subtask_id):
    """Body: {is_completed}"""
    db = firestore.client()
    payload = request.get_json(force=True, silent=True) or {}
    subtask = TaskModel(db).toggle_subtask(viewer, task_id, subtask_id, payload.get("is_completed"))
    return jsonify(subtask), 200
