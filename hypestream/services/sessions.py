"""Listening session reward engine"""
import logging
from typing import Optional

from hypestream.exceptions import UnauthorizedError, ValidationError
from hypestream.models.domain import SessionProgress
from hypestream.rewards import REWARD_AMOUNT, evaluate_listen
from hypestream.services.storage import StorageService

logger = logging.getLogger(__name__)

class ListeningSessionService:
    """Opens listening sessions and turns progress reports into coin awards"""

    def __init__(self, storage: StorageService):
        self.storage = storage

    def start_session(self, user_id: str, track_id: int) -> int:
        """
        Open a session for a playback and credit the play to the track.

        The play counts at start, whether or not the session ever completes.
        """
        self.storage.require_user(user_id)
        self.storage.require_track(track_id)

        listening_session = self.storage.create_listening_session(user_id, track_id)
        self.storage.increment_track_stat(track_id, 'plays')
        logger.info(f"User {user_id} started session {listening_session.id} on track {track_id}")
        return listening_session.id

    def report_progress(self, session_id: int, elapsed_seconds: int,
                        user_id: Optional[str] = None) -> SessionProgress:
        """
        Record the cumulative listening time of a session and award coins once.

        The reported duration replaces the stored one. Crossing the threshold
        claims the session's reward; only the claiming report credits the
        owner, so repeating a final report earns nothing more.

        Returns:
            SessionProgress with the coins credited by this report and the
            session's completion state
        """
        if isinstance(elapsed_seconds, bool) or not isinstance(elapsed_seconds, int) or elapsed_seconds < 0:
            raise ValidationError(f"Elapsed seconds must be a non-negative integer, got {elapsed_seconds!r}")

        listening_session = self.storage.require_listening_session(session_id)
        if user_id is not None and listening_session.user_id != user_id:
            logger.warning(f"User {user_id} reported progress on session {session_id} owned by {listening_session.user_id}")
            raise UnauthorizedError(f"Session {session_id} does not belong to user {user_id}")

        decision = evaluate_listen(elapsed_seconds)
        already_completed = bool(listening_session.completed)
        owner_id = listening_session.user_id

        credited = 0
        if decision.completed and self.storage.claim_session_reward(session_id):
            self.storage.credit_coins(owner_id, decision.coins_earned)
            credited = decision.coins_earned
        elif decision.completed:
            logger.info(f"Session {session_id} already rewarded, not crediting again")

        completed = already_completed or decision.completed
        self.storage.update_listening_session(
            session_id,
            duration=elapsed_seconds,
            coins_earned=REWARD_AMOUNT if completed else 0,
            completed=completed
        )
        logger.info(f"Session {session_id}: {elapsed_seconds}s reported, completed={completed}, credited={credited}")
        return SessionProgress(coins_earned=credited, completed=completed)
