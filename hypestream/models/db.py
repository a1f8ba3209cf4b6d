"""SQLAlchemy database models for users, tracks, listening sessions and interactions"""
import datetime

from sqlalchemy import (
    Column, Integer, String, Text, Boolean, DateTime, ForeignKey, UniqueConstraint, Index
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

def utcnow() -> datetime.datetime:
    """Naive UTC timestamp, the form every DateTime column stores"""
    return datetime.datetime.now(datetime.UTC).replace(tzinfo=None)

class User(Base):
    """
    An authenticated listener.
    coin_balance is only ever credited by the listening reward engine.
    """
    __tablename__ = 'users'

    id = Column(String, primary_key=True)
    email = Column(String, unique=True, nullable=True)
    first_name = Column(String, nullable=True)
    last_name = Column(String, nullable=True)
    profile_image_url = Column(String, nullable=True)
    coin_balance = Column(Integer, nullable=False, default=0)
    spotify_access_token = Column(Text, nullable=True)
    spotify_refresh_token = Column(Text, nullable=True)
    spotify_user_id = Column(String, nullable=True)
    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    tracks = relationship("Track", back_populates="uploader")

class Track(Base):
    """
    A playable track, uploaded by a user or imported from Spotify.
    plays/likes/shares are lifetime totals and only go up.
    """
    __tablename__ = 'tracks'

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    artist = Column(String, nullable=False)
    album_cover = Column(Text, nullable=True)
    spotify_track_id = Column(String, unique=True, nullable=True)
    duration = Column(Integer, nullable=True)  # seconds
    preview_url = Column(Text, nullable=True)
    uploaded_by = Column(String, ForeignKey('users.id'), nullable=True, index=True)
    plays = Column(Integer, nullable=False, default=0)
    likes = Column(Integer, nullable=False, default=0)
    shares = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, default=utcnow, index=True)

    uploader = relationship("User", back_populates="tracks")

class ListeningSession(Base):
    """
    One playback attempt of a track by a user.
    reward_applied is flipped exactly once, by the report that claims the coins.
    """
    __tablename__ = 'listening_sessions'

    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey('users.id'), nullable=False, index=True)
    track_id = Column(Integer, ForeignKey('tracks.id'), nullable=False)
    duration = Column(Integer, nullable=False, default=0)  # seconds listened
    coins_earned = Column(Integer, nullable=False, default=0)
    completed = Column(Boolean, nullable=False, default=False)
    reward_applied = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        Index('ix_listening_sessions_user_created', 'user_id', 'created_at'),
    )

class UserInteraction(Base):
    """
    Presence of a row means the interaction is active.
    target_id holds a user id or a track id depending on target_type.
    """
    __tablename__ = 'user_interactions'

    id = Column(Integer, primary_key=True)
    user_id = Column(String, ForeignKey('users.id'), nullable=False)
    target_id = Column(String, nullable=False)
    target_type = Column(String, nullable=False)
    interaction_type = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow)

    __table_args__ = (
        UniqueConstraint(
            'user_id', 'target_id', 'target_type', 'interaction_type',
            name='uq_user_interaction'
        ),
        Index('ix_user_interactions_target', 'target_type', 'target_id', 'interaction_type'),
    )
