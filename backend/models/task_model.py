import logging
from datetime import datetime, timezone, timedelta
from typing import Dict, Any, Optional, List

from google.cloud.firestore_v1.base_query import FieldFilter

from models.log_model import LogModel
from models.notification_model import (
    NotificationModel,
    NOTIFY_COMMENT_ADDED,
    NOTIFY_STATUS_UPDATED,
    NOTIFY_TASK_ASSIGNED,
)
from services.hierarchy_service import has_oversight
from services.validation_service import ValidationService
from utils.errors import NotFoundError
from utils.validators import Helpers, CLOSED_STATUSES, ROLE_MEMBER, STATUS_TODO, normalize_role

logger = logging.getLogger(__name__)

URGENT_WINDOW = timedelta(hours=30)
# Collections whose documents hang off a task through task_id
TASK_CHILD_COLLECTIONS = ['comments', 'subtasks', 'notifications']


def task_from_doc(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data['id'] = doc.id
    data['assigned_to_ids'] = list(data.get('assigned_to_ids') or [])
    return data


def is_urgent(due_date: datetime, now: Optional[datetime] = None) -> bool:
    """Due within the next 30 hours (or already past)."""
    now = now or datetime.now(timezone.utc)
    return due_date - now < URGENT_WINDOW


def task_link(task_id: str) -> str:
    return f'/dashboard/tasks/{task_id}'


def _name(actor: Dict[str, Any]) -> str:
    return actor.get('name') or actor['id']


class TaskModel:
    """Task data model for Firestore operations.

    Mutations take the acting user and raise PermissionError when the
    actor may not perform them, NotFoundError when the task is missing and
    ValueError on invalid input. Each mutation appends an activity log.
    """

    def __init__(self, db):
        self.db = db
        self.collection = db.collection('tasks')
        self.comments = db.collection('comments')
        self.subtasks = db.collection('subtasks')
        self.logs = LogModel(db)
        self.notifications = NotificationModel(db)

    def get_all_tasks(self) -> List[Dict[str, Any]]:
        """All tasks, newest first"""
        tasks = [task_from_doc(doc) for doc in self.collection.stream()]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        tasks.sort(key=lambda t: Helpers.parse_timestamp(t.get('created_at')) or epoch, reverse=True)
        return tasks

    def get_task(self, task_id: str) -> Optional[Dict[str, Any]]:
        doc = self.collection.document(task_id).get()
        if not doc.exists:
            return None
        return task_from_doc(doc)

    def _require_task(self, task_id: str) -> Dict[str, Any]:
        task = self.get_task(task_id)
        if task is None:
            raise NotFoundError('Task not found')
        return task

    @staticmethod
    def can_manage(actor: Dict[str, Any], task: Dict[str, Any]) -> bool:
        """Assigner or an oversight role may edit or delete a task."""
        return task.get('assigned_by_id') == actor.get('id') or has_oversight(actor)

    @staticmethod
    def _require_assignee(actor: Dict[str, Any], task: Dict[str, Any]):
        if actor.get('id') not in task['assigned_to_ids']:
            raise PermissionError('You do not have permission to modify this task.')

    @staticmethod
    def _check_assignment(actor: Dict[str, Any], assignee_ids: List[str]):
        """Members may only assign tasks to themselves."""
        if normalize_role(actor.get('role')) == ROLE_MEMBER and \
                any(uid != actor.get('id') for uid in assignee_ids):
            raise PermissionError('You can only assign tasks to yourself.')

    @staticmethod
    def _validated(task_data: Dict[str, Any]) -> Dict[str, Any]:
        result = ValidationService.validate_task_data(task_data)
        if not result['valid']:
            raise ValueError('; '.join(result['errors']))
        data = result['data']
        due = data['due_date']
        data['urgent'] = is_urgent(due)
        data['due_date'] = Helpers.format_timestamp(due)
        return data

    def create_task(self, actor: Dict[str, Any], task_data: Dict[str, Any],
                    assignee_names: Optional[List[str]] = None) -> Dict[str, Any]:
        """Create a task assigned by ``actor`` and notify the other assignees."""
        data = self._validated(task_data)
        self._check_assignment(actor, data['assigned_to_ids'])

        task_doc = {
            **data,
            'status': STATUS_TODO,
            'assigned_by_id': actor['id'],
            'created_at': Helpers.now_iso(),
        }
        ref = self.collection.document()
        ref.set(task_doc)
        logger.info(f"Created task {ref.id} by {actor['id']}")

        self.notifications.notify_many(
            data['assigned_to_ids'], actor['id'], NOTIFY_TASK_ASSIGNED,
            f'{_name(actor)} assigned a new task to you: {data["title"]}',
            task_link(ref.id), task_id=ref.id,
        )

        if data['assigned_to_ids']:
            names = ', '.join(assignee_names or data['assigned_to_ids'])
            self.logs.add_log(
                actor['id'],
                f'{_name(actor)} assigned "{data["title"]}" to {names}.',
                task_id=ref.id,
            )
        return {'id': ref.id, **task_doc}

    def update_task(self, actor: Dict[str, Any], task_id: str, task_data: Dict[str, Any]) -> Dict[str, Any]:
        task = self._require_task(task_id)
        if not self.can_manage(actor, task):
            raise PermissionError('You do not have permission to edit this task.')

        data = self._validated(task_data)
        self._check_assignment(actor, data['assigned_to_ids'])
        self.collection.document(task_id).update(data)
        self.logs.add_log(
            actor['id'],
            f'{_name(actor)} edited the task "{data["title"]}".',
            task_id=task_id,
        )
        return {**task, **data}

    def update_status(self, actor: Dict[str, Any], task_id: str, status: str) -> Dict[str, Any]:
        """Only assignees move a task between statuses.

        Closing a task clears its pending notifications before the assigner
        is told about the change.
        """
        result = ValidationService.validate_status(status)
        if not result['valid']:
            raise ValueError(result['error'])
        status = result['value']

        task = self._require_task(task_id)
        if actor.get('id') not in task['assigned_to_ids']:
            raise PermissionError("You do not have permission to update this task's status.")

        old_status = task.get('status')
        self.collection.document(task_id).update({'status': status})
        self.logs.add_log(
            actor['id'],
            f'{_name(actor)} updated the status of "{task.get("title")}" '
            f'from "{old_status}" to "{status}".',
            task_id=task_id,
        )

        if status in CLOSED_STATUSES:
            stale = self.notifications.for_task(task_id)
            if stale:
                batch = self.db.batch()
                for doc in stale:
                    batch.delete(doc.reference)
                batch.commit()

        assigner_id = task.get('assigned_by_id')
        if assigner_id and assigner_id != actor['id']:
            self.notifications.create_notification(
                assigner_id, actor['id'], NOTIFY_STATUS_UPDATED,
                f'{_name(actor)} updated the status of {task.get("title")} to {status}',
                task_link(task_id), task_id=task_id,
            )
        return {**task, 'status': status}

    def delete_task(self, actor: Dict[str, Any], task_id: str) -> None:
        """Delete a task with its comments, subtasks and notifications in one batch."""
        task = self._require_task(task_id)
        if not self.can_manage(actor, task):
            raise PermissionError('You do not have permission to delete this task.')

        batch = self.db.batch()
        for name in TASK_CHILD_COLLECTIONS:
            for doc in self.db.collection(name).where(filter=FieldFilter('task_id', '==', task_id)).stream():
                batch.delete(doc.reference)
        batch.delete(self.collection.document(task_id))

        log_ref = self.logs.collection.document()
        batch.set(log_ref, self.logs.build_log(
            actor['id'],
            f'{_name(actor)} deleted the task "{task.get("title")}".',
        ))
        batch.commit()
        logger.info(f"Deleted task {task_id} and its child documents")

    # Links

    def add_link(self, actor: Dict[str, Any], task_id: str, link: str) -> Dict[str, Any]:
        result = ValidationService.validate_url(link)
        if not result['valid']:
            raise ValueError(result['error'])
        link = result['value']

        task = self._require_task(task_id)
        if actor.get('id') not in task['assigned_to_ids']:
            raise PermissionError('You do not have permission to add links to this task.')

        links = list(task.get('links') or [])
        if link not in links:
            if len(links) >= ValidationService.MAX_LINKS:
                raise ValueError(f'At most {ValidationService.MAX_LINKS} links are allowed')
            links.append(link)
            self.collection.document(task_id).update({'links': links})
            self.logs.add_log(actor['id'], f'{_name(actor)} added a link to "{task.get("title")}".', task_id=task_id)
        return {**task, 'links': links}

    # Comments

    def get_comments(self, task_id: str) -> List[Dict[str, Any]]:
        """Comments on a task, oldest first"""
        docs = self.comments.where(filter=FieldFilter('task_id', '==', task_id)).stream()
        comments = [{'id': doc.id, **doc.to_dict()} for doc in docs]
        comments.sort(key=lambda c: c.get('created_at') or '')
        return comments

    def add_comment(self, actor: Dict[str, Any], task_id: str, message: str) -> Dict[str, Any]:
        """Comment on a task; the assigner and assignees other than the author are notified."""
        result = ValidationService.validate_message(message)
        if not result['valid']:
            raise ValueError(result['error'])

        task = self._require_task(task_id)
        comment = {
            'task_id': task_id,
            'user_id': actor['id'],
            'message': result['value'],
            'created_at': Helpers.now_iso(),
        }
        ref = self.comments.document()
        ref.set(comment)

        self.logs.add_log(actor['id'], f'{_name(actor)} commented on "{task.get("title")}".', task_id=task_id)
        self.notifications.notify_many(
            [task.get('assigned_by_id')] + task['assigned_to_ids'], actor['id'], NOTIFY_COMMENT_ADDED,
            f'{_name(actor)} left a comment on {task.get("title")}',
            task_link(task_id), task_id=task_id,
        )
        return {'id': ref.id, **comment}

    # Subtasks

    def get_subtasks(self, task_id: str) -> List[Dict[str, Any]]:
        docs = self.subtasks.where(filter=FieldFilter('task_id', '==', task_id)).stream()
        subtasks = [{'id': doc.id, **doc.to_dict()} for doc in docs]
        subtasks.sort(key=lambda s: s.get('order', 0))
        return subtasks

    def add_subtask(self, actor: Dict[str, Any], task_id: str, title: str) -> Dict[str, Any]:
        result = ValidationService.validate_message(title, 'Subtask title')
        if not result['valid']:
            raise ValueError(result['error'])

        task = self._require_task(task_id)
        self._require_assignee(actor, task)

        subtask = {
            'task_id': task_id,
            'title': result['value'],
            'is_completed': False,
            'created_at': Helpers.now_iso(),
            'order': len(self.get_subtasks(task_id)),
        }
        ref = self.subtasks.document()
        ref.set(subtask)
        return {'id': ref.id, **subtask}

    def toggle_subtask(self, actor: Dict[str, Any], task_id: str, subtask_id: str,
                       is_completed: bool) -> Dict[str, Any]:
        if not isinstance(is_completed, bool):
            raise ValueError('is_completed must be true or false')

        task = self._require_task(task_id)
        self._require_assignee(actor, task)

        ref = self.subtasks.document(subtask_id)
        doc = ref.get()
        if not doc.exists or doc.to_dict().get('task_id') != task_id:
            raise NotFoundError('Subtask not found')
        ref.update({'is_completed': is_completed})
        return {'id': subtask_id, **doc.to_dict(), 'is_completed': is_completed}

    def reorder_subtasks(self, actor: Dict[str, Any], task_id: str, subtask_ids: List[str]) -> List[Dict[str, Any]]:
        """Rewrite ``order`` so it follows ``subtask_ids``, in one batch."""
        task = self._require_task(task_id)
        self._require_assignee(actor, task)

        current = {s['id'] for s in self.get_subtasks(task_id)}
        if not isinstance(subtask_ids, list) or not all(isinstance(s, str) for s in subtask_ids) \
                or set(subtask_ids) != current or len(subtask_ids) != len(current):
            raise ValueError("subtask_ids must list each of the task's subtasks once")

        batch = self.db.batch()
        for index, subtask_id in enumerate(subtask_ids):
            batch.update(self.subtasks.document(subtask_id), {'order': index})
        batch.commit()
        return self.get_subtasks(task_id)
