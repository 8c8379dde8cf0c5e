"""
Organizational Hierarchy Service
Derives the reports-to graph from a flat user snapshot and gates visibility
"""
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from utils.validators import (
    OVERSIGHT_ROLES,
    ROLE_DIRECTOR,
    ROLE_LEAD,
    ROLE_MEMBER,
    normalize_role,
)


def _role_of(user: Dict[str, Any]) -> Optional[str]:
    return normalize_role(user.get('role'))


def has_oversight(user: Dict[str, Any]) -> bool:
    """Owner and Secretary see the whole organization."""
    return _role_of(user or {}) in OVERSIGHT_ROLES


class HierarchyResolver:
    """Resolves subordinates and visibility over one snapshot of all users.

    The snapshot is indexed once on construction (id -> user,
    team -> ids, sub_team -> ids) so recursive lookups never rescan
    the full user list. Instances are read-only after construction and
    can be shared between requests that use the same snapshot.
    """

    def __init__(self, all_users: Iterable[Dict[str, Any]]):
        self._users_by_id: Dict[str, Dict[str, Any]] = {}
        self._ids_by_team: Dict[str, List[str]] = {}
        self._ids_by_sub_team: Dict[str, List[str]] = {}

        for user in all_users or []:
            user_id = user.get('id')
            if not user_id:
                continue
            self._users_by_id[user_id] = user
            team = user.get('team')
            if team:
                self._ids_by_team.setdefault(team, []).append(user_id)
            sub_team = user.get('sub_team')
            if sub_team:
                self._ids_by_sub_team.setdefault(sub_team, []).append(user_id)

    @property
    def users(self) -> List[Dict[str, Any]]:
        return list(self._users_by_id.values())

    def get_user(self, user_id: str) -> Optional[Dict[str, Any]]:
        return self._users_by_id.get(user_id)

    def direct_subordinates_of(self, manager_id: str) -> List[str]:
        """Users one rank below the manager in the manager's unit."""
        manager = self._users_by_id.get(manager_id)
        if not manager:
            return []

        role = _role_of(manager)
        if role == ROLE_DIRECTOR:
            team = manager.get('team')
            candidates = self._ids_by_team.get(team, []) if team else []
            allowed = (ROLE_LEAD, ROLE_MEMBER)
        elif role == ROLE_LEAD:
            sub_team = manager.get('sub_team')
            candidates = self._ids_by_sub_team.get(sub_team, []) if sub_team else []
            allowed = (ROLE_MEMBER,)
        else:
            # Owner/Secretary see everything through oversight, not the graph
            return []

        return [
            uid for uid in candidates
            if uid != manager_id and _role_of(self._users_by_id[uid]) in allowed
        ]

    def subordinates_of(self, manager_id: str) -> Set[str]:
        """Every user transitively managed by ``manager_id``.

        Expands level by level until no new ids appear, so it does not
        depend on the Director -> Lead -> Member depth. An unknown manager
        yields an empty set.
        """
        found: Set[str] = set()
        frontier = [manager_id]
        while frontier:
            next_frontier = []
            for current in frontier:
                for uid in self.direct_subordinates_of(current):
                    if uid not in found and uid != manager_id:
                        found.add(uid)
                        next_frontier.append(uid)
            frontier = next_frontier
        return found

    def visible_user_ids(self, user: Dict[str, Any]) -> Set[str]:
        """The viewer plus everyone below them."""
        user_id = (user or {}).get('id')
        if not user_id:
            return set()
        return {user_id} | self.subordinates_of(user_id)

    def has_oversight(self, user: Dict[str, Any]) -> bool:
        return has_oversight(user)

    def visible_to(self, user: Dict[str, Any], items: Iterable[Any],
                   extract_owner_ids: Callable[[Any], Iterable[str]],
                   also_visible: Optional[Callable[[Any], bool]] = None) -> List[Any]:
        """Filter ``items`` down to what ``user`` may see, preserving order.

        ``extract_owner_ids`` returns the ids owning an item (several for a
        task with multiple assignees). ``also_visible`` admits items by a
        rule other than ownership.
        """
        items = list(items or [])
        if self.has_oversight(user):
            return items

        visible_ids = self.visible_user_ids(user)
        result = []
        for item in items:
            owners = extract_owner_ids(item) or ()
            if any(owner in visible_ids for owner in owners):
                result.append(item)
            elif also_visible is not None and also_visible(item):
                result.append(item)
        return result


def subordinates_of(manager_id: str, all_users: Iterable[Dict[str, Any]]) -> Set[str]:
    """Transitive subordinates of a manager within ``all_users``."""
    return HierarchyResolver(all_users).subordinates_of(manager_id)


def visible_to(user: Dict[str, Any], items: Iterable[Any],
               extract_owner_ids: Callable[[Any], Iterable[str]],
               all_users: Iterable[Dict[str, Any]]) -> List[Any]:
    """Items owned by the user or anyone below them; everything for oversight roles."""
    return HierarchyResolver(all_users).visible_to(user, items, extract_owner_ids)
