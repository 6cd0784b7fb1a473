"""In-memory state owned by a single room.

Nothing here locks: a room mutates its state only from its own serialized
mailbox (see ``gallery.room``).
"""

import logging
from typing import Dict, Iterable, List, Optional

from gallery import messages
from gallery.models import NetworkedEntity, NetworkedUser, Target
from gallery.sink import Sink

logger = logging.getLogger(__name__)


class RoomState:
    def __init__(self, sink: Sink):
        self.sink = sink
        self.users: Dict[str, NetworkedUser] = {}
        self.entities: Dict[str, NetworkedEntity] = {}
        self.attributes: Dict[str, str] = {}
        # Full lineup for the round; kept until reset so `claimed` stays observable
        self.current_target_set: Dict[str, Target] = {}
        # Targets nobody has claimed yet
        self.current_active_targets: Dict[str, Target] = {}
        self.game_scores: Dict[str, int] = {}

    # ---- room attributes ----
    def set_room_attribute(self, key: str, value) -> None:
        value = '' if value is None else str(value)
        if self.attributes.get(key) == value:
            return
        self.attributes[key] = value
        self.sink.set_room_attributes({key: value})

    # ---- users ----
    def add_user(self, user: NetworkedUser) -> None:
        self.users[user.user_id] = user

    def remove_user(self, user_id: str) -> Optional[NetworkedUser]:
        return self.users.pop(user_id, None)

    def user_for_session(self, session_id: str) -> Optional[NetworkedUser]:
        for user in self.users.values():
            if user.session_id == session_id:
                return user
        return None

    def set_user_attributes(self, user_id: str, attributes: Dict[str, str]) -> bool:
        user = self.users.get(user_id)
        if not user:
            logger.debug(f"[attr-skip] no user with id={user_id}")
            return False
        changes = {str(k): '' if v is None else str(v) for k, v in (attributes or {}).items()}
        user.attributes.update(changes)
        self.sink.set_user_attributes(user_id, changes)
        return True

    def set_users_attribute(self, key: str, value: str) -> None:
        """Set one attribute on every connected user."""
        for user_id in list(self.users):
            self.set_user_attributes(user_id, {key: value})

    def check_all_ready(self) -> bool:
        return all(
            u.attributes.get(messages.CLIENT_READY_STATE) == messages.READY
            for u in self.users.values()
        )

    # ---- entities ----
    def add_entity(self, entity: NetworkedEntity) -> None:
        self.entities[entity.entity_id] = entity

    def remove_entity(self, entity_id: str) -> Optional[NetworkedEntity]:
        return self.entities.pop(entity_id, None)

    def has_entity(self, entity_id: str) -> bool:
        return entity_id in self.entities

    def entities_owned_by(self, user_id: str) -> List[NetworkedEntity]:
        return [e for e in self.entities.values() if e.owner_id == user_id]

    # ---- round collections ----
    def load_lineup(self, lineup: Iterable[Target]) -> None:
        self.current_target_set.clear()
        self.current_active_targets.clear()
        for target in lineup:
            if target.uid not in self.current_target_set:
                self.current_target_set[target.uid] = target
            if target.uid not in self.current_active_targets:
                self.current_active_targets[target.uid] = target

    def clear_round(self) -> None:
        self.game_scores.clear()
        self.current_target_set.clear()
        self.current_active_targets.clear()

    def to_dict(self):
        return {
            'attributes': dict(self.attributes),
            'users': [u.to_dict() for u in self.users.values()],
            'entities': [e.to_dict() for e in self.entities.values()],
            'targets': [t.to_dict() for t in self.current_target_set.values()],
            'active_targets': list(self.current_active_targets),
            'scores': dict(self.game_scores),
        }
