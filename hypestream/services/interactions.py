"""Like / share / follow toggling"""
import logging

from hypestream.models.domain import (
    InteractionTarget, InteractionType, TargetType, ToggleAction, ToggleResult
)
from hypestream.services.storage import StorageService

logger = logging.getLogger(__name__)

# Track counters bumped when an interaction of this type is created.
# Removing the interaction leaves the counter alone: it is a lifetime total.
TRACK_COUNTER_BY_INTERACTION = {
    InteractionType.LIKE: 'likes',
    InteractionType.SHARE: 'shares',
}

class InteractionService:
    """Two-state user to target relationships"""

    def __init__(self, storage: StorageService):
        self.storage = storage

    def _require_target(self, target: InteractionTarget) -> None:
        if target.type is TargetType.TRACK:
            self.storage.require_track(target.id)
        elif target.type is TargetType.USER:
            self.storage.require_user(target.id)

    def toggle(self, user_id: str, target: InteractionTarget,
               interaction_type: InteractionType) -> ToggleResult:
        """Remove the interaction if it is active, create it otherwise"""
        self.storage.require_user(user_id)
        self._require_target(target)

        if self.storage.get_user_interaction(user_id, target, interaction_type):
            self.storage.delete_user_interaction(user_id, target, interaction_type)
            logger.info(f"User {user_id} removed {interaction_type.value} on {target.type.value} {target.key}")
            return ToggleResult(action=ToggleAction.REMOVED)

        self.storage.create_user_interaction(user_id, target, interaction_type)
        counter = TRACK_COUNTER_BY_INTERACTION.get(interaction_type)
        if target.type is TargetType.TRACK and counter:
            self.storage.increment_track_stat(target.id, counter)
        logger.info(f"User {user_id} created {interaction_type.value} on {target.type.value} {target.key}")
        return ToggleResult(action=ToggleAction.CREATED)
