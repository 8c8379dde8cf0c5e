from datetime import datetime, timezone
from typing import Dict, Any, Iterable, List, Optional

from google.cloud.firestore_v1.base_query import FieldFilter

from utils.errors import NotFoundError
from utils.validators import Helpers

NOTIFY_TASK_ASSIGNED = 'TASK_ASSIGNED'
NOTIFY_STATUS_UPDATED = 'STATUS_UPDATED'
NOTIFY_COMMENT_ADDED = 'COMMENT_ADDED'
NOTIFY_ANNOUNCEMENT_NEW = 'ANNOUNCEMENT_NEW'


def notification_from_doc(doc) -> Dict[str, Any]:
    return {'id': doc.id, **(doc.to_dict() or {})}


class NotificationModel:
    """In-app notifications addressed to a single user"""

    def __init__(self, db):
        self.db = db
        self.collection = db.collection('notifications')

    @staticmethod
    def build_notification(user_id: str, actor_id: str, kind: str, message: str, link: str,
                           task_id: Optional[str] = None) -> Dict[str, Any]:
        notif = {
            'user_id': user_id,
            'actor_id': actor_id,
            'type': kind,
            'message': message,
            'link': link,
            'is_read': False,
            'created_at': Helpers.now_iso(),
        }
        if task_id:
            notif['task_id'] = task_id
        return notif

    def create_notification(self, user_id: str, actor_id: str, kind: str, message: str, link: str,
                            task_id: Optional[str] = None) -> Dict[str, Any]:
        notif = self.build_notification(user_id, actor_id, kind, message, link, task_id)
        ref = self.collection.document()
        ref.set(notif)
        return {'id': ref.id, **notif}

    def notify_many(self, user_ids: Iterable[str], actor_id: str, kind: str, message: str, link: str,
                    task_id: Optional[str] = None) -> int:
        """Write one notification per recipient in a single batch; skips the actor."""
        recipients = [uid for uid in dict.fromkeys(user_ids) if uid and uid != actor_id]
        if not recipients:
            return 0
        batch = self.db.batch()
        for uid in recipients:
            batch.set(self.collection.document(),
                      self.build_notification(uid, actor_id, kind, message, link, task_id))
        batch.commit()
        return len(recipients)

    def for_task(self, task_id: str) -> List[Any]:
        return list(self.collection.where(filter=FieldFilter('task_id', '==', task_id)).stream())

    def get_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        """A user's notifications, newest first"""
        docs = self.collection.where(filter=FieldFilter('user_id', '==', user_id)).stream()
        notifications = [notification_from_doc(doc) for doc in docs]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        notifications.sort(key=lambda n: Helpers.parse_timestamp(n.get('created_at')) or epoch, reverse=True)
        return notifications

    def mark_read(self, actor: Dict[str, Any], notification_id: str) -> Dict[str, Any]:
        ref = self.collection.document(notification_id)
        doc = ref.get()
        # Someone else's notification reads as missing
        if not doc.exists or doc.to_dict().get('user_id') != actor.get('id'):
            raise NotFoundError('Notification not found')
        ref.update({'is_read': True})
        return {**notification_from_doc(doc), 'is_read': True}
