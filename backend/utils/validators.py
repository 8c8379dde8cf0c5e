from datetime import datetime, timezone
from typing import Dict, Any, Optional

# Roles, highest oversight first
ROLE_OWNER = 'Owner'
ROLE_SECRETARY = 'Secretary'
ROLE_DIRECTOR = 'Director'
ROLE_LEAD = 'Lead'
ROLE_MEMBER = 'Member'

VALID_ROLES = [ROLE_OWNER, ROLE_SECRETARY, ROLE_DIRECTOR, ROLE_LEAD, ROLE_MEMBER]
OVERSIGHT_ROLES = [ROLE_OWNER, ROLE_SECRETARY]
ANNOUNCER_ROLES = [ROLE_OWNER, ROLE_SECRETARY, ROLE_DIRECTOR]

# Labels used by the seeded user records
ROLE_ALIASES = {
    'Co-founder': ROLE_OWNER,
    'Chair of Directors': ROLE_DIRECTOR,
}

VALID_TEAMS = ['Technology', 'Corporate', 'Creatives', 'Presidium']
VALID_SUB_TEAMS = [
    'dev', 'ui-ux', 'aiml', 'cloud', 'iot',
    'events', 'ops', 'pr', 'sponsorship',
    'digital-design', 'media',
]

STATUS_TODO = 'To Do'
STATUS_IN_PROGRESS = 'In Progress'
STATUS_DONE = 'Done'
STATUS_CANCELLED = 'Cancelled'

VALID_STATUSES = [STATUS_TODO, STATUS_IN_PROGRESS, STATUS_DONE, STATUS_CANCELLED]
ACTIVE_STATUSES = [STATUS_TODO, STATUS_IN_PROGRESS]
CLOSED_STATUSES = [STATUS_DONE, STATUS_CANCELLED]


def normalize_role(role: Optional[str]) -> Optional[str]:
    """Map legacy role labels onto the canonical role names."""
    if not role:
        return role
    return ROLE_ALIASES.get(role, role)


class Validators:
    """Input validation utilities"""

    @staticmethod
    def validate_role(role: str) -> bool:
        """Validate user role"""
        return normalize_role(role) in VALID_ROLES

    @staticmethod
    def validate_team(team: Optional[str]) -> bool:
        """A team is optional, but must be a known one when given"""
        return team is None or team in VALID_TEAMS

    @staticmethod
    def validate_sub_team(sub_team: Optional[str]) -> bool:
        return sub_team is None or sub_team in VALID_SUB_TEAMS

    @staticmethod
    def validate_placement(role: str, team: Optional[str], sub_team: Optional[str]) -> bool:
        """Directors need a team, Leads a sub-team, Members both."""
        role = normalize_role(role)
        if role == ROLE_DIRECTOR:
            return bool(team)
        if role == ROLE_LEAD:
            return bool(sub_team)
        if role == ROLE_MEMBER:
            return bool(team) and bool(sub_team)
        return True


class Helpers:
    """Utility helper functions"""

    @staticmethod
    def get_current_timestamp() -> datetime:
        """Get current timestamp"""
        return datetime.now(timezone.utc)

    @staticmethod
    def format_timestamp(timestamp: datetime) -> str:
        """Format timestamp for API response"""
        return timestamp.isoformat()

    @staticmethod
    def now_iso() -> str:
        return Helpers.format_timestamp(Helpers.get_current_timestamp())

    @staticmethod
    def parse_timestamp(timestamp_str: str) -> Optional[datetime]:
        """Parse an ISO timestamp, assuming UTC when no offset is given"""
        try:
            if not timestamp_str:
                return None
            dt = datetime.fromisoformat(timestamp_str.replace('Z', '+00:00'))
            if dt.tzinfo is None:
                dt = dt.replace(tzinfo=timezone.utc)
            return dt
        except (ValueError, TypeError, AttributeError):
            return None

    @staticmethod
    def sanitize_string(text: str) -> str:
        """Sanitize string input"""
        if not text:
            return ""
        return text.strip()

    @staticmethod
    def build_error_response(message: str, code: Any = 400, details: Any = None) -> Dict[str, Any]:
        """Build standardized error response"""
        response = {
            'error': message,
            'code': code,
            'timestamp': Helpers.now_iso()
        }
        if details is not None:
            response['details'] = details
        return response
