"""Spotify catalog import"""
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from hypestream.models.domain import ImportReport
from hypestream.services.spotify import SpotifyAPI
from hypestream.services.storage import StorageService

logger = logging.getLogger(__name__)

class CatalogImporter:
    """Copies an artist's Spotify catalog into the track table"""

    def __init__(self, storage: StorageService, spotify: SpotifyAPI):
        self.storage = storage
        self.spotify = spotify

    def import_artist_catalog(self, user_id: str, artist_id: str,
                              fallback_artist_name: Optional[str] = None) -> ImportReport:
        """
        Create a track, owned by `user_id`, for every catalog entry not yet stored.

        Fetch or credential failures propagate and nothing is imported. A
        failure creating an individual track is logged and that track skipped.
        """
        self.storage.require_user(user_id)

        catalog = self.spotify.get_artist_catalog(artist_id)
        logger.info(f"Importing {len(catalog)} tracks from artist {artist_id}")

        existing_ids = self.storage.get_spotify_track_ids()
        report = ImportReport(artist_id=artist_id, fetched=len(catalog), created=0, skipped_existing=0)

        for provider_track in catalog:
            if provider_track.spotify_track_id in existing_ids:
                report.skipped_existing += 1
                continue
            try:
                with self.storage.session.begin_nested():
                    self.storage.create_track(
                        title=provider_track.title,
                        artist=provider_track.artist or fallback_artist_name or "Unknown Artist",
                        album_cover=provider_track.album_cover,
                        spotify_track_id=provider_track.spotify_track_id,
                        duration=provider_track.duration_seconds,
                        preview_url=provider_track.preview_url,
                        uploaded_by=user_id
                    )
            except SQLAlchemyError as e:
                logger.error(f"Failed to import track {provider_track.title} ({provider_track.spotify_track_id}): {e}")
                report.failed.append(provider_track.spotify_track_id)
                continue
            existing_ids.add(provider_track.spotify_track_id)
            report.created += 1
            logger.info(f"Imported: {provider_track.title}")

        logger.info(
            f"Finished importing artist {artist_id}: {report.created} created, "
            f"{report.skipped_existing} already present, {len(report.failed)} failed"
        )
        return report
