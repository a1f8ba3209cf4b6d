"""Database storage service for users, tracks, listening sessions and interactions"""
import logging
import datetime
from typing import List, Optional, Set
from sqlalchemy.orm import Session
from sqlalchemy import func, and_
from sqlalchemy.exc import SQLAlchemyError

from hypestream.exceptions import NotFoundError
from hypestream.models.api import UserProfile
from hypestream.models.db import User, Track, ListeningSession, UserInteraction, utcnow
from hypestream.models.domain import InteractionTarget, InteractionType, ListeningStats
from hypestream.ranking import DEFAULT_FEED_LIMIT, tier_expression

logger = logging.getLogger(__name__)

TRACK_COUNTERS = ('plays', 'likes', 'shares')

class StorageService:
    """
    Handles all database operations.

    Nothing here commits: the caller owns the transaction, so a logical
    operation made of several statements succeeds or fails as one unit.
    Counter and balance changes are SQL increment expressions.
    """

    def __init__(self, session: Session):
        self.session = session

    # --- Users ---

    def get_user(self, user_id: str) -> Optional[User]:
        return self.session.get(User, user_id)

    def require_user(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if user is None:
            raise NotFoundError("user", user_id)
        return user

    def upsert_user(self, profile: UserProfile) -> User:
        """Create the user on first authentication, refresh the profile afterwards"""
        try:
            user = self.get_user(profile.id)
            if user:
                for key, value in profile.model_dump(exclude={'id'}).items():
                    setattr(user, key, value)
                user.updated_at = utcnow()
            else:
                logger.info(f"Creating user {profile.id}")
                user = User(coin_balance=0, **profile.model_dump())
                self.session.add(user)
            self.session.flush()
            return user
        except SQLAlchemyError as e:
            logger.error(f"Database error upserting user {profile.id}: {e}")
            raise

    def credit_coins(self, user_id: str, amount: int) -> None:
        """Atomically add coins to a user's balance"""
        if amount < 0:
            raise ValueError(f"Cannot credit a negative amount: {amount}")
        updated = (
            self.session.query(User)
            .filter_by(id=user_id)
            .update(
                {User.coin_balance: User.coin_balance + amount, User.updated_at: utcnow()},
                synchronize_session='fetch'
            )
        )
        if not updated:
            raise NotFoundError("user", user_id)
        logger.info(f"Credited {amount} coins to user {user_id}")

    def update_spotify_tokens(self, user_id: str, access_token: str,
                              refresh_token: Optional[str] = None,
                              spotify_user_id: Optional[str] = None) -> None:
        """Store linked-account tokens; a missing refresh token keeps the stored one"""
        user = self.require_user(user_id)
        user.spotify_access_token = access_token
        if refresh_token:
            user.spotify_refresh_token = refresh_token
        if spotify_user_id:
            user.spotify_user_id = spotify_user_id
        user.updated_at = utcnow()
        self.session.flush()

    # --- Tracks ---

    def create_track(self, title: str, artist: str, uploaded_by: Optional[str] = None,
                     album_cover: Optional[str] = None, spotify_track_id: Optional[str] = None,
                     duration: Optional[int] = None, preview_url: Optional[str] = None,
                     created_at: Optional[datetime.datetime] = None) -> Track:
        try:
            track = Track(
                title=title,
                artist=artist,
                uploaded_by=uploaded_by,
                album_cover=album_cover,
                spotify_track_id=spotify_track_id,
                duration=duration,
                preview_url=preview_url,
                plays=0,
                likes=0,
                shares=0,
                created_at=created_at or utcnow()
            )
            self.session.add(track)
            self.session.flush()
            return track
        except SQLAlchemyError as e:
            logger.error(f"Database error creating track '{title}': {e}")
            raise

    def get_track(self, track_id: int) -> Optional[Track]:
        return self.session.get(Track, track_id)

    def require_track(self, track_id: int) -> Track:
        track = self.get_track(track_id)
        if track is None:
            raise NotFoundError("track", track_id)
        return track

    def get_tracks(self, limit: Optional[int] = DEFAULT_FEED_LIMIT) -> List[Track]:
        """Most recently created tracks first"""
        query = self.session.query(Track).order_by(Track.created_at.desc(), Track.id.desc())
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_discovery_feed(self, user_id: str, featured_uploader_id: str,
                           limit: int = DEFAULT_FEED_LIMIT) -> List[Track]:
        """Tracks ordered by feed tier, newest first within a tier"""
        return (
            self.session.query(Track)
            .order_by(
                tier_expression(Track.uploaded_by, user_id, featured_uploader_id),
                Track.created_at.desc(),
                Track.id.desc()
            )
            .limit(limit)
            .all()
        )

    def get_spotify_track_ids(self) -> Set[str]:
        """Every Spotify id already present in the catalog"""
        rows = self.session.query(Track.spotify_track_id).filter(Track.spotify_track_id.isnot(None)).all()
        return {row[0] for row in rows}

    def increment_track_stat(self, track_id: int, field: str) -> None:
        """Atomically add one to a track counter"""
        if field not in TRACK_COUNTERS:
            raise ValueError(f"Unknown track counter: {field}")
        column = getattr(Track, field)
        updated = (
            self.session.query(Track)
            .filter_by(id=track_id)
            .update({column: column + 1}, synchronize_session='fetch')
        )
        if not updated:
            raise NotFoundError("track", track_id)

    # --- Listening sessions ---

    def create_listening_session(self, user_id: str, track_id: int) -> ListeningSession:
        listening_session = ListeningSession(
            user_id=user_id,
            track_id=track_id,
            duration=0,
            coins_earned=0,
            completed=False,
            reward_applied=False
        )
        self.session.add(listening_session)
        self.session.flush()
        return listening_session

    def get_listening_session(self, session_id: int) -> Optional[ListeningSession]:
        return self.session.get(ListeningSession, session_id)

    def require_listening_session(self, session_id: int) -> ListeningSession:
        listening_session = self.get_listening_session(session_id)
        if listening_session is None:
            raise NotFoundError("listening session", session_id)
        return listening_session

    def update_listening_session(self, session_id: int, duration: int,
                                 coins_earned: int, completed: bool) -> None:
        updated = (
            self.session.query(ListeningSession)
            .filter_by(id=session_id)
            .update(
                {
                    ListeningSession.duration: duration,
                    ListeningSession.coins_earned: coins_earned,
                    ListeningSession.completed: completed,
                },
                synchronize_session='fetch'
            )
        )
        if not updated:
            raise NotFoundError("listening session", session_id)

    def claim_session_reward(self, session_id: int) -> bool:
        """
        Flip reward_applied from false to true.

        Returns True only for the single call that performed the flip; every
        later call sees the flag already set and gets False.
        """
        claimed = (
            self.session.query(ListeningSession)
            .filter(and_(
                ListeningSession.id == session_id,
                ListeningSession.reward_applied.is_(False)
            ))
            .update({ListeningSession.reward_applied: True}, synchronize_session='fetch')
        )
        return claimed == 1

    def get_user_listening_stats(self, user_id: str, since: datetime.datetime) -> ListeningStats:
        """Session count and coins earned for sessions created at or after `since` (naive UTC)"""
        try:
            streams, coins = (
                self.session.query(
                    func.count(ListeningSession.id),
                    func.coalesce(func.sum(ListeningSession.coins_earned), 0)
                )
                .filter(and_(
                    ListeningSession.user_id == user_id,
                    ListeningSession.created_at >= since
                ))
                .one()
            )
            return ListeningStats(today_streams=int(streams or 0), today_coins=int(coins or 0))
        except SQLAlchemyError as e:
            logger.error(f"Database error reading listening stats for user {user_id}: {e}")
            raise

    # --- Interactions ---

    def _interaction_filter(self, user_id: str, target: InteractionTarget,
                            interaction_type: InteractionType):
        return and_(
            UserInteraction.user_id == user_id,
            UserInteraction.target_id == target.key,
            UserInteraction.target_type == target.type.value,
            UserInteraction.interaction_type == interaction_type.value
        )

    def get_user_interaction(self, user_id: str, target: InteractionTarget,
                             interaction_type: InteractionType) -> Optional[UserInteraction]:
        return (
            self.session.query(UserInteraction)
            .filter(self._interaction_filter(user_id, target, interaction_type))
            .first()
        )

    def create_user_interaction(self, user_id: str, target: InteractionTarget,
                                interaction_type: InteractionType) -> UserInteraction:
        try:
            interaction = UserInteraction(
                user_id=user_id,
                target_id=target.key,
                target_type=target.type.value,
                interaction_type=interaction_type.value
            )
            self.session.add(interaction)
            self.session.flush()
            return interaction
        except SQLAlchemyError as e:
            logger.error(
                f"Database error creating {interaction_type.value} interaction "
                f"from {user_id} on {target.type.value} {target.key}: {e}"
            )
            raise

    def delete_user_interaction(self, user_id: str, target: InteractionTarget,
                                interaction_type: InteractionType) -> int:
        return (
            self.session.query(UserInteraction)
            .filter(self._interaction_filter(user_id, target, interaction_type))
            .delete(synchronize_session='fetch')
        )

    def count_active_interactions(self, target: InteractionTarget,
                                  interaction_type: InteractionType) -> int:
        """Number of users whose interaction with the target is currently active"""
        return (
            self.session.query(func.count(UserInteraction.id))
            .filter(and_(
                UserInteraction.target_id == target.key,
                UserInteraction.target_type == target.type.value,
                UserInteraction.interaction_type == interaction_type.value
            ))
            .scalar()
        ) or 0
