"""Spotify Web API and Accounts service integration"""
import logging
from typing import Dict, List, Optional, Any, Tuple
from urllib.parse import urlencode

import requests

from hypestream.config import SpotifySettings
from hypestream.exceptions import UpstreamError
from hypestream.models.domain import ProviderTrack

logger = logging.getLogger(__name__)

# Scopes requested when a user links their Spotify account
USER_SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-library-read",
    "user-top-read",
    "playlist-read-private",
    "streaming",
]
# Spotify caps artist album pages at 50 items
ALBUM_PAGE_SIZE = 50
ALBUM_TRACKS_PAGE_SIZE = 50

def _get_image_url(images_list: Optional[List[Dict]], preferred_index: int = 0) -> Optional[str]:
    """Safely extracts an image URL from Spotify's image list."""
    if not images_list or not isinstance(images_list, list):
        return None
    if len(images_list) > preferred_index and isinstance(images_list[preferred_index], dict):
        return images_list[preferred_index].get('url')
    for img in images_list:
        if isinstance(img, dict) and img.get('url'):
            return img.get('url')
    return None

def _get_primary_artist_info(artists_list: Optional[List[Dict]]) -> Tuple[Optional[str], Optional[str]]:
    """Safely extracts primary artist name and ID."""
    if isinstance(artists_list, list) and artists_list:
        primary_artist = artists_list[0]
        if isinstance(primary_artist, dict):
            return primary_artist.get('name'), primary_artist.get('id')
    return None, None

def to_provider_track(track_data: Dict[str, Any], album: Optional[Dict[str, Any]] = None) -> Optional[ProviderTrack]:
    """
    Reduce a Spotify track object to a ProviderTrack.

    Album track listings omit the album, so it can be supplied separately.
    Returns None for entries without an id.
    """
    if not isinstance(track_data, dict) or not track_data.get('id'):
        return None
    album = album if album is not None else track_data.get('album') or {}
    artist_name, _ = _get_primary_artist_info(track_data.get('artists'))
    duration = track_data.get('duration_ms') or 0
    try:
        duration_ms = max(0, int(duration))
    except (ValueError, TypeError):
        logger.warning(f"Invalid duration {duration} for track {track_data.get('id')}")
        duration_ms = 0
    return ProviderTrack(
        spotify_track_id=track_data['id'],
        title=track_data.get('name') or 'Untitled',
        artist=artist_name,
        album_cover=_get_image_url(album.get('images') if isinstance(album, dict) else None),
        duration_ms=duration_ms,
        preview_url=track_data.get('preview_url')
    )


class SpotifyAPI:
    """Handles all Spotify API interactions"""

    def __init__(self, config: SpotifySettings, session: Optional[requests.Session] = None):
        """
        Initialize with application credentials.

        Raises:
            ValueError: If the client id or secret is missing
        """
        if not config.client_id or not config.client_secret:
            raise ValueError("SPOTIFY_CLIENT_ID and SPOTIFY_CLIENT_SECRET are required")
        self.config = config
        self.base_url = config.api_url.rstrip('/')
        self.accounts_url = config.accounts_url.rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update({'Accept': 'application/json'})

    # --- Transport ---

    def _decode(self, response: requests.Response, url: str) -> Dict[str, Any]:
        try:
            json_response = response.json()
        except ValueError:
            logger.error(f"Failed to decode JSON response from {url}. Status: {response.status_code}. Response text: {response.text[:200]}")
            raise UpstreamError(f"Invalid JSON from Spotify ({url})", response.status_code)
        if not isinstance(json_response, dict):
            raise UpstreamError(f"Unexpected response shape from Spotify ({url})", response.status_code)
        return json_response

    def _send(self, method: str, url: str, **kwargs) -> Dict[str, Any]:
        """Issue one request; any failure becomes an UpstreamError"""
        try:
            logger.debug(f"{method} {url}")
            response = self.session.request(method, url, timeout=self.config.timeout, **kwargs)
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status == 401:
                logger.error(f"Spotify token is invalid or expired (401) for {url}")
            elif status == 403:
                logger.error(f"Forbidden access (403) to Spotify endpoint {url}. Check scopes/permissions.")
            elif status == 429:
                logger.error(f"Rate limit hit (429) for {url}")
            else:
                logger.error(f"Spotify returned {status} for {url}: {e}")
            raise UpstreamError(f"Spotify request failed with status {status}: {url}", status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error for {url}: {e}")
            raise UpstreamError(f"Spotify request failed: {e}") from e
        return self._decode(response, url)

    def _get(self, endpoint_or_url: str, access_token: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """GET a Web API endpoint (relative) or a full `next` page URL"""
        if endpoint_or_url.startswith('http'):
            url = endpoint_or_url
        else:
            url = f'{self.base_url}/{endpoint_or_url.lstrip("/")}'
        return self._send('GET', url, params=params, headers={'Authorization': f'Bearer {access_token}'})

    def _token_request(self, form: Dict[str, str]) -> Dict[str, Any]:
        url = f'{self.accounts_url}/api/token'
        data = self._send(
            'POST', url,
            data=form,
            auth=(self.config.client_id, self.config.client_secret),
            headers={'Content-Type': 'application/x-www-form-urlencoded'}
        )
        if not data.get('access_token'):
            logger.error(f"Token response from Spotify has no access_token (grant: {form.get('grant_type')})")
            raise UpstreamError("Spotify token response did not include an access token")
        return data

    # --- Accounts service ---

    def get_client_token(self) -> str:
        """Application token from the client-credentials grant"""
        logger.info("Requesting Spotify client credentials token...")
        return self._token_request({'grant_type': 'client_credentials'})['access_token']

    def get_authorize_url(self, redirect_uri: str, state: Optional[str] = None) -> str:
        """URL the user is sent to in order to link their Spotify account"""
        params = {
            'client_id': self.config.client_id,
            'response_type': 'code',
            'redirect_uri': redirect_uri,
            'scope': ' '.join(USER_SCOPES),
            'show_dialog': 'true',
        }
        if state:
            params['state'] = state
        return f'{self.accounts_url}/authorize?{urlencode(params)}'

    def exchange_code(self, code: str, redirect_uri: str) -> Dict[str, Any]:
        """Exchange an authorization code for access and refresh tokens"""
        logger.info("Exchanging Spotify authorization code...")
        return self._token_request({
            'grant_type': 'authorization_code',
            'code': code,
            'redirect_uri': redirect_uri,
        })

    def refresh_access_token(self, refresh_token: str) -> Dict[str, Any]:
        """Trade a refresh token for a new access token"""
        logger.info("Refreshing Spotify user access token...")
        return self._token_request({
            'grant_type': 'refresh_token',
            'refresh_token': refresh_token,
        })

    # --- Web API ---

    def get_current_user(self, access_token: str) -> Dict[str, Any]:
        """Profile of the user owning the access token"""
        user_info = self._get('me', access_token)
        if 'id' not in user_info:
            logger.error(f"Invalid user info response received: {user_info}")
            raise UpstreamError("Failed to fetch valid user info from Spotify.")
        return user_info

    def get_artist_top_tracks(self, artist_id: str, access_token: str) -> List[Dict]:
        data = self._get(f'artists/{artist_id}/top-tracks', access_token, params={'market': self.config.market})
        tracks = data.get('tracks')
        if not isinstance(tracks, list):
            logger.warning(f"Unexpected response format for top tracks of artist {artist_id}: {data}")
            return []
        return tracks

    def get_artist_albums(self, artist_id: str, access_token: str) -> List[Dict]:
        """All albums and singles of an artist, following pagination"""
        albums: List[Dict] = []
        data = self._get(
            f'artists/{artist_id}/albums', access_token,
            params={'include_groups': 'album,single', 'market': self.config.market, 'limit': ALBUM_PAGE_SIZE}
        )
        while True:
            items = data.get('items')
            if isinstance(items, list):
                albums.extend(item for item in items if isinstance(item, dict) and item.get('id'))
            next_url = data.get('next')
            if not next_url:
                break
            data = self._get(next_url, access_token)
        return albums

    def get_album_tracks(self, album_id: str, access_token: str) -> List[Dict]:
        tracks: List[Dict] = []
        data = self._get(f'albums/{album_id}/tracks', access_token, params={'limit': ALBUM_TRACKS_PAGE_SIZE})
        while True:
            items = data.get('items')
            if isinstance(items, list):
                tracks.extend(item for item in items if isinstance(item, dict))
            next_url = data.get('next')
            if not next_url:
                break
            data = self._get(next_url, access_token)
        return tracks

    def get_artist_catalog(self, artist_id: str, access_token: Optional[str] = None) -> List[ProviderTrack]:
        """
        Top tracks plus every album track of an artist, deduplicated by track id.

        The first occurrence of a track wins, so top-track entries (which carry
        full album data) take precedence over album listings.
        """
        token = access_token or self.get_client_token()

        raw_entries: List[Tuple[Dict, Optional[Dict]]] = [
            (track, None) for track in self.get_artist_top_tracks(artist_id, token)
        ]
        albums = self.get_artist_albums(artist_id, token)
        logger.info(f"Artist {artist_id}: {len(raw_entries)} top tracks, {len(albums)} albums")
        for album in albums:
            for track in self.get_album_tracks(album['id'], token):
                raw_entries.append((track, album))

        catalog: List[ProviderTrack] = []
        seen_ids = set()
        for track_data, album in raw_entries:
            provider_track = to_provider_track(track_data, album)
            if provider_track is None:
                logger.warning(f"Skipping invalid track entry: {track_data}")
                continue
            if provider_track.spotify_track_id in seen_ids:
                continue
            seen_ids.add(provider_track.spotify_track_id)
            catalog.append(provider_track)
        return catalog

    def search_tracks(self, query: str, access_token: Optional[str] = None, limit: int = 20) -> List[Dict]:
        """Search the Spotify catalog, with the user's token when available"""
        token = access_token or self.get_client_token()
        data = self._get('search', token, params={'q': query, 'type': 'track', 'limit': limit})
        tracks = data.get('tracks') or {}
        items = tracks.get('items') if isinstance(tracks, dict) else None
        return items if isinstance(items, list) else []
