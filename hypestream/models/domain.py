"""Domain models passed between the HypeStream services"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

class TargetType(str, Enum):
    """What an interaction points at"""
    USER = 'user'
    TRACK = 'track'

class InteractionType(str, Enum):
    LIKE = 'like'
    SHARE = 'share'
    FOLLOW = 'follow'
    PLAYLIST_ADD = 'playlist_add'

class ToggleAction(str, Enum):
    CREATED = 'created'
    REMOVED = 'removed'

@dataclass(frozen=True)
class InteractionTarget:
    """
    Tagged reference to the target of an interaction.
    Track targets carry an int id, user targets a string id.
    """
    type: TargetType
    id: Union[int, str]

    @classmethod
    def track(cls, track_id: int) -> 'InteractionTarget':
        return cls(TargetType.TRACK, int(track_id))

    @classmethod
    def user(cls, user_id: str) -> 'InteractionTarget':
        return cls(TargetType.USER, str(user_id))

    @classmethod
    def parse(cls, target_type: str, target_id: str) -> 'InteractionTarget':
        """Build a target from its stored (target_type, target_id) pair"""
        kind = TargetType(target_type)
        if kind is TargetType.TRACK:
            return cls.track(int(target_id))
        return cls.user(target_id)

    @property
    def key(self) -> str:
        """The id as stored in user_interactions.target_id"""
        return str(self.id)

@dataclass
class SessionProgress:
    """Outcome of one progress report"""
    coins_earned: int
    completed: bool

@dataclass
class ToggleResult:
    action: ToggleAction

@dataclass
class ListeningStats:
    """Today's listening activity for a user"""
    today_streams: int
    today_coins: int

@dataclass
class TrackEngagement:
    """Lifetime counters next to the currently active interaction counts"""
    track_id: int
    plays: int
    lifetime_likes: int
    lifetime_shares: int
    active_likes: int
    active_shares: int

@dataclass
class ProviderTrack:
    """A track as described by Spotify, reduced to what the catalog stores"""
    spotify_track_id: str
    title: str
    artist: Optional[str]
    album_cover: Optional[str]
    duration_ms: int
    preview_url: Optional[str]

    @property
    def duration_seconds(self) -> int:
        return self.duration_ms // 1000

@dataclass
class ImportReport:
    """Summary of a catalog import run"""
    artist_id: str
    fetched: int
    created: int
    skipped_existing: int
    failed: list = field(default_factory=list)
