"""Service facade: one method per operation the route layer calls"""
import datetime
import logging
from typing import Any, Dict, List, Optional

import pydantic

from hypestream.config import Settings
from hypestream.db import Database, db as default_db
from hypestream.exceptions import UnauthorizedError, ValidationError
from hypestream.models.api import (
    InteractionRequest, ProgressReport, SpotifyTokens, TrackResponse, TrackUpload,
    UserProfile, UserResponse
)
from hypestream.models.domain import (
    InteractionTarget, InteractionType, ListeningStats, SessionProgress, ToggleResult,
    TrackEngagement
)
from hypestream.ranking import DEFAULT_FEED_LIMIT
from hypestream.services.catalog import CatalogImporter
from hypestream.services.interactions import InteractionService
from hypestream.services.sessions import ListeningSessionService
from hypestream.services.spotify import SpotifyAPI
from hypestream.services.storage import StorageService

logger = logging.getLogger(__name__)

def local_midnight_utc(now: Optional[datetime.datetime] = None) -> datetime.datetime:
    """Start of the current local day as a naive UTC timestamp"""
    now = (now or datetime.datetime.now()).astimezone()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    return midnight.astimezone(datetime.UTC).replace(tzinfo=None)

def _validate(model, payload):
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except pydantic.ValidationError as e:
        raise ValidationError(str(e)) from e

class HypeStream:
    """
    Entry point for the route layer.

    Every public method runs in its own database transaction: either all of
    its writes commit or none do.
    """

    def __init__(self, settings: Settings, database: Database = default_db,
                 spotify: Optional[SpotifyAPI] = None):
        self.settings = settings
        self.database = database
        self._spotify = spotify

    @property
    def spotify(self) -> SpotifyAPI:
        """Spotify client, built on first use so the rest works without credentials"""
        if self._spotify is None:
            self._spotify = SpotifyAPI(self.settings.spotify_settings)
        return self._spotify

    # --- Users ---

    def upsert_user(self, profile) -> UserResponse:
        profile = _validate(UserProfile, profile)
        with self.database.session() as session:
            user = StorageService(session).upsert_user(profile)
            return self._user_response(user)

    def get_user(self, user_id: str) -> UserResponse:
        if not user_id:
            raise UnauthorizedError("No authenticated user")
        with self.database.session() as session:
            return self._user_response(StorageService(session).require_user(user_id))

    @staticmethod
    def _user_response(user) -> UserResponse:
        response = UserResponse.model_validate(user)
        return response.model_copy(update={'spotify_connected': bool(user.spotify_access_token)})

    # --- Playback ---

    def start_playback(self, user_id: str, track_id: int) -> int:
        """Open a listening session; returns its id"""
        with self.database.session() as session:
            return ListeningSessionService(StorageService(session)).start_session(user_id, track_id)

    def report_progress(self, user_id: str, session_id: int, payload) -> SessionProgress:
        report = _validate(ProgressReport, payload)
        with self.database.session() as session:
            engine = ListeningSessionService(StorageService(session))
            return engine.report_progress(session_id, report.duration, user_id=user_id)

    def user_stats(self, user_id: str, now: Optional[datetime.datetime] = None) -> ListeningStats:
        """Streams started and coins earned since local midnight"""
        with self.database.session() as session:
            storage = StorageService(session)
            storage.require_user(user_id)
            return storage.get_user_listening_stats(user_id, since=local_midnight_utc(now))

    # --- Tracks ---

    def discovery_feed(self, user_id: str, limit: Optional[int] = None) -> List[TrackResponse]:
        limit = self.settings.FEED_LIMIT if limit is None else limit
        if limit < 0:
            raise ValidationError(f"Feed limit cannot be negative: {limit}")
        with self.database.session() as session:
            tracks = StorageService(session).get_discovery_feed(
                user_id, self.settings.FEATURED_UPLOADER_ID, limit=limit
            )
            return [TrackResponse.model_validate(track) for track in tracks]

    def list_tracks(self, limit: int = DEFAULT_FEED_LIMIT) -> List[TrackResponse]:
        with self.database.session() as session:
            return [TrackResponse.model_validate(t) for t in StorageService(session).get_tracks(limit)]

    def upload_track(self, user_id: str, payload) -> TrackResponse:
        upload = _validate(TrackUpload, payload)
        with self.database.session() as session:
            storage = StorageService(session)
            storage.require_user(user_id)
            track = storage.create_track(uploaded_by=user_id, **upload.model_dump())
            logger.info(f"User {user_id} uploaded track {track.id} '{track.title}'")
            return TrackResponse.model_validate(track)

    def track_engagement(self, track_id: int) -> TrackEngagement:
        """Lifetime counters alongside the number of currently active likes and shares"""
        with self.database.session() as session:
            storage = StorageService(session)
            track = storage.require_track(track_id)
            target = InteractionTarget.track(track_id)
            return TrackEngagement(
                track_id=track.id,
                plays=track.plays,
                lifetime_likes=track.likes,
                lifetime_shares=track.shares,
                active_likes=storage.count_active_interactions(target, InteractionType.LIKE),
                active_shares=storage.count_active_interactions(target, InteractionType.SHARE)
            )

    # --- Interactions ---

    def toggle_interaction(self, user_id: str, payload) -> ToggleResult:
        request = _validate(InteractionRequest, payload)
        try:
            target = InteractionTarget.parse(request.target_type.value, request.target_id)
        except ValueError as e:
            raise ValidationError(f"Invalid {request.target_type.value} id {request.target_id!r}") from e
        with self.database.session() as session:
            return InteractionService(StorageService(session)).toggle(user_id, target, request.interaction_type)

    # --- Spotify ---

    def connect_spotify(self, user_id: str, payload) -> None:
        """Store tokens obtained by the client-side Spotify login"""
        tokens = _validate(SpotifyTokens, payload)
        with self.database.session() as session:
            StorageService(session).update_spotify_tokens(user_id, tokens.access_token, tokens.refresh_token)
        logger.info(f"Spotify tokens stored for user {user_id}")

    def spotify_authorize_url(self, redirect_uri: str, state: Optional[str] = None) -> str:
        return self.spotify.get_authorize_url(redirect_uri, state=state)

    def complete_spotify_link(self, user_id: str, code: str, redirect_uri: str) -> None:
        """OAuth callback: exchange the code and store the user's tokens"""
        if not code:
            raise ValidationError("Missing authorization code")
        with self.database.session() as session:
            storage = StorageService(session)
            storage.require_user(user_id)
            token_data = self.spotify.exchange_code(code, redirect_uri)
            profile = self.spotify.get_current_user(token_data['access_token'])
            storage.update_spotify_tokens(
                user_id,
                token_data['access_token'],
                token_data.get('refresh_token'),
                spotify_user_id=profile.get('id')
            )
        logger.info(f"Spotify account {profile.get('id')} linked to user {user_id}")

    def search_spotify(self, user_id: str, query: str) -> List[Dict[str, Any]]:
        if not query or not query.strip():
            raise ValidationError("Search query cannot be empty")
        with self.database.session() as session:
            user = StorageService(session).get_user(user_id)
            access_token = user.spotify_access_token if user else None
        return self.spotify.search_tracks(query, access_token=access_token)

    def import_catalog(self, user_id: str, artist_id: Optional[str] = None) -> int:
        """Import an artist's catalog (the featured artist by default); returns tracks created"""
        artist_id = artist_id or self.settings.FEATURED_ARTIST_ID
        with self.database.session() as session:
            importer = CatalogImporter(StorageService(session), self.spotify)
            report = importer.import_artist_catalog(user_id, artist_id)
        return report.created
