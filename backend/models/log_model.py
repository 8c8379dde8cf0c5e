from typing import Dict, Any, Optional, List

from utils.validators import Helpers


def log_from_doc(doc) -> Dict[str, Any]:
    return {'id': doc.id, **(doc.to_dict() or {})}


class LogModel:
    """Append-only activity log"""

    def __init__(self, db):
        self.collection = db.collection('logs')

    def get_all_logs(self) -> List[Dict[str, Any]]:
        return [log_from_doc(doc) for doc in self.collection.stream()]

    def build_log(self, user_id: str, message: str, task_id: Optional[str] = None,
                  announcement_id: Optional[str] = None) -> Dict[str, Any]:
        log_doc = {
            'message': message,
            'timestamp': Helpers.now_iso(),
            'user_id': user_id,
        }
        if task_id:
            log_doc['task_id'] = task_id
        if announcement_id:
            log_doc['announcement_id'] = announcement_id
        return log_doc

    def add_log(self, user_id: str, message: str, task_id: Optional[str] = None,
                announcement_id: Optional[str] = None) -> Dict[str, Any]:
        log_doc = self.build_log(user_id, message, task_id, announcement_id)
        ref = self.collection.document()
        ref.set(log_doc)
        return {'id': ref.id, **log_doc}
