import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional

from models.log_model import LogModel
from models.notification_model import NotificationModel, NOTIFY_ANNOUNCEMENT_NEW
from models.user_model import UserModel
from services.validation_service import ValidationService
from services.visibility_service import announcement_visible
from utils.errors import NotFoundError
from utils.validators import Helpers, ANNOUNCER_ROLES, normalize_role

logger = logging.getLogger(__name__)


def announcement_from_doc(doc) -> Dict[str, Any]:
    data = doc.to_dict() or {}
    data['id'] = doc.id
    data['target_domains'] = list(data.get('target_domains') or [])
    return data


def summarize_engagement(announcement: Dict[str, Any], viewer_id: str, votes: List[Dict[str, Any]],
                         reactions: List[Dict[str, Any]], comments: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Poll tallies, reaction counts and comments for one announcement.

    ``votes``, ``reactions`` and ``comments`` may cover every announcement;
    only records pointing at this one are counted.
    """
    aid = announcement['id']
    summary: Dict[str, Any] = {}

    poll = announcement.get('poll')
    if poll:
        mine = [v for v in votes if v.get('announcement_id') == aid]
        summary['poll'] = {
            **poll,
            'results': [
                {**option, 'votes': sum(1 for v in mine if v.get('option_id') == option['id'])}
                for option in poll.get('options') or []
            ],
            'total_votes': len(mine),
            'my_vote': next((v.get('option_id') for v in mine if v.get('user_id') == viewer_id), None),
        }

    counts: Dict[str, int] = {}
    my_reactions = []
    for reaction in reactions:
        if reaction.get('announcement_id') != aid:
            continue
        counts[reaction['emoji']] = counts.get(reaction['emoji'], 0) + 1
        if reaction.get('user_id') == viewer_id:
            my_reactions.append(reaction['emoji'])
    summary['reactions'] = counts
    summary['my_reactions'] = my_reactions

    summary['comments'] = sorted(
        (c for c in comments if c.get('announcement_id') == aid),
        key=lambda c: c.get('created_at') or '',
    )
    return summary


class AnnouncementModel:
    """Announcements, organization-wide or targeted at teams, with polls,
    reactions and comments"""

    def __init__(self, db):
        self.db = db
        self.collection = db.collection('announcements')
        self.votes = db.collection('poll_votes')
        self.reactions = db.collection('announcement_reactions')
        self.comments = db.collection('announcement_comments')
        self.logs = LogModel(db)
        self.notifications = NotificationModel(db)

    def get_announcements(self) -> List[Dict[str, Any]]:
        """All announcements, newest first"""
        announcements = [announcement_from_doc(doc) for doc in self.collection.stream()]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        announcements.sort(key=lambda a: Helpers.parse_timestamp(a.get('created_at')) or epoch, reverse=True)
        return announcements

    def get_announcement(self, announcement_id: str) -> Optional[Dict[str, Any]]:
        doc = self.collection.document(announcement_id).get()
        if not doc.exists:
            return None
        return announcement_from_doc(doc)

    def require_visible(self, viewer: Dict[str, Any], announcement_id: str) -> Dict[str, Any]:
        """Announcements outside the viewer's audience read as missing."""
        announcement = self.get_announcement(announcement_id)
        if announcement is None or not announcement_visible(viewer, announcement):
            raise NotFoundError('Announcement not found')
        return announcement

    def get_engagement(self):
        """Every vote, reaction and comment, read once per request."""
        return (
            [doc.to_dict() for doc in self.votes.stream()],
            [doc.to_dict() for doc in self.reactions.stream()],
            [{'id': doc.id, **doc.to_dict()} for doc in self.comments.stream()],
        )

    @staticmethod
    def can_post(actor: Dict[str, Any]) -> bool:
        return normalize_role(actor.get('role')) in ANNOUNCER_ROLES

    def create_announcement(self, actor: Dict[str, Any], data: Dict[str, Any]) -> Dict[str, Any]:
        if not self.can_post(actor):
            raise PermissionError('You do not have permission to create announcements.')

        result = ValidationService.validate_announcement_data(data)
        if not result['valid']:
            raise ValueError('; '.join(result['errors']))

        announcement = {
            **result['data'],
            'author_id': actor['id'],
            'created_at': Helpers.now_iso(),
        }
        ref = self.collection.document()
        ref.set(announcement)
        logger.info(f"Announcement {ref.id} posted by {actor['id']}")

        audience = [
            u['id'] for u in UserModel(self.db).get_all_users()
            if announcement_visible({'team': u.get('team')}, {'target_domains': announcement['target_domains']})
        ]
        self.notifications.notify_many(
            audience, actor['id'], NOTIFY_ANNOUNCEMENT_NEW,
            f'New announcement posted by {actor.get("name", actor["id"])}: {announcement["title"]}',
            f'/dashboard/announcements#{ref.id}',
        )

        self.logs.add_log(
            actor['id'],
            f'{actor.get("name", actor["id"])} posted the announcement "{announcement["title"]}".',
            announcement_id=ref.id,
        )
        return {'id': ref.id, **announcement}

    def submit_vote(self, actor: Dict[str, Any], announcement_id: str, option_id: str) -> Dict[str, Any]:
        """One vote per user and poll; voting again replaces the earlier choice."""
        announcement = self.require_visible(actor, announcement_id)
        poll = announcement.get('poll')
        if not poll:
            raise ValueError('This announcement has no poll')
        if option_id not in [o.get('id') for o in poll.get('options') or []]:
            raise ValueError('Unknown poll option')

        vote = {'announcement_id': announcement_id, 'user_id': actor['id'], 'option_id': option_id}
        self.votes.document(f'{announcement_id}_{actor["id"]}').set(vote)
        return vote

    def toggle_reaction(self, actor: Dict[str, Any], announcement_id: str, emoji: str) -> bool:
        """Add the reaction, or remove it when already present. Returns whether it is now set."""
        self.require_visible(actor, announcement_id)
        emoji = Helpers.sanitize_string(emoji if isinstance(emoji, str) else '')
        if not emoji:
            raise ValueError('An emoji is required')

        ref = self.reactions.document(f'{announcement_id}_{actor["id"]}_{emoji}')
        if ref.get().exists:
            ref.delete()
            return False
        ref.set({'announcement_id': announcement_id, 'user_id': actor['id'], 'emoji': emoji})
        return True

    def add_comment(self, actor: Dict[str, Any], announcement_id: str, message: str) -> Dict[str, Any]:
        self.require_visible(actor, announcement_id)
        result = ValidationService.validate_message(message)
        if not result['valid']:
            raise ValueError(result['error'])

        comment = {
            'announcement_id': announcement_id,
            'user_id': actor['id'],
            'message': result['value'],
            'created_at': Helpers.now_iso(),
        }
        ref = self.comments.document()
        ref.set(comment)
        return {'id': ref.id, **comment}
