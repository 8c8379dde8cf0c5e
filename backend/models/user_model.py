from typing import Dict, Any, Optional, List

from services.hierarchy_service import HierarchyResolver
from utils.errors import NotFoundError
from utils.validators import Validators, Helpers, ANNOUNCER_ROLES, normalize_role

PROFILE_FIELDS = ['name', 'email', 'role', 'team', 'sub_team', 'avatar']
PLACEMENT_HINTS = {
    'Director': 'a team',
    'Lead': 'a sub_team',
    'Member': 'a team and a sub_team',
}


def user_from_doc(doc) -> Dict[str, Any]:
    """Flatten a Firestore snapshot into a user dict keyed by ``id``."""
    data = doc.to_dict() or {}
    data['id'] = doc.id
    data['role'] = normalize_role(data.get('role'))
    return data


def validate_profile(user_data: Dict[str, Any]) -> Dict[str, Any]:
    """Clean a user's profile fields.

    Raises ValueError when name or email is missing, when the role, team or
    sub-team is unknown, or when the placement does not fit the role.
    """
    name = Helpers.sanitize_string(user_data.get('name') or '')
    email = Helpers.sanitize_string(user_data.get('email') or '').lower()
    role = normalize_role(user_data.get('role'))
    team = user_data.get('team') or None
    sub_team = user_data.get('sub_team') or None

    if not name or not email:
        raise ValueError('name and email are required')
    if not Validators.validate_role(role):
        raise ValueError('Invalid role')
    if not Validators.validate_team(team):
        raise ValueError('Invalid team')
    if not Validators.validate_sub_team(sub_team):
        raise ValueError('Invalid sub_team')
    if not Validators.validate_placement(role, team, sub_team):
        raise ValueError(f'{role} requires {PLACEMENT_HINTS[role]}')

    return {
        'name': name,
        'email': email,
        'role': role,
        'team': team,
        'sub_team': sub_team,
        'avatar': user_data.get('avatar') or None,
    }


class UserModel:
    """User data model for Firestore operations"""

    def __init__(self, db):
        self.collection = db.collection('users')

    def get_all_users(self) -> List[Dict[str, Any]]:
        """Complete snapshot of the user directory, no pagination."""
        return [user_from_doc(doc) for doc in self.collection.stream()]

    def get_resolver(self) -> HierarchyResolver:
        """Hierarchy over a fresh snapshot, built once per request."""
        return HierarchyResolver(self.get_all_users())

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Get user by id"""
        if not user_id:
            return None
        doc = self.collection.document(user_id).get()
        if not doc.exists:
            return None
        return user_from_doc(doc)

    def create_user(self, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """Seed a user record. Raises ValueError on invalid data or a taken id."""
        user_id = Helpers.sanitize_string(user_data.get('user_id') or user_data.get('id') or '')
        if not user_id:
            raise ValueError('user_id is required')
        user_doc = validate_profile(user_data)

        doc_ref = self.collection.document(user_id)
        if doc_ref.get().exists:
            raise ValueError('User already exists')

        user_doc['created_at'] = Helpers.now_iso()
        doc_ref.set(user_doc)
        return {'id': user_id, **user_doc}

    def update_user(self, actor: Dict[str, Any], user_id: str, user_data: Dict[str, Any]) -> Dict[str, Any]:
        """Admin edit of a user's profile and placement.

        Owner, Secretary and Director may edit; omitted fields keep their
        stored values.
        """
        if normalize_role(actor.get('role')) not in ANNOUNCER_ROLES:
            raise PermissionError('Not authorized')

        existing = self.get_user(user_id)
        if existing is None:
            raise NotFoundError('User not found')

        merged = {field: existing.get(field) for field in PROFILE_FIELDS}
        merged.update({k: v for k, v in user_data.items() if k in PROFILE_FIELDS})
        profile = validate_profile(merged)

        self.collection.document(user_id).update(profile)
        return {**existing, **profile}
