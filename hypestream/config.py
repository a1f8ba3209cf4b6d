"""Application configuration and environment settings"""
from typing import Optional
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class SpotifySettings(BaseModel):
    """Spotify specific settings"""
    client_id: Optional[str] = Field(None, description="Spotify application client ID")
    client_secret: Optional[str] = Field(None, description="Spotify application client secret")
    api_url: str = Field(..., description="Spotify Web API base URL")
    accounts_url: str = Field(..., description="Spotify Accounts service base URL")
    market: str = Field(..., description="Market used for catalog lookups")
    timeout: float = Field(..., description="Per-request timeout in seconds")

class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Database
    DATABASE_URL: Optional[str] = Field(None, description="Full database URL, overrides the DB_* settings")
    DB_HOST: str = Field("localhost", description="Database host")
    DB_PORT: str = Field("5432", description="Database port")
    DB_NAME: str = Field("hypestream", description="Database name")
    DB_USER: str = Field("hypestream", description="Database user")
    DB_PASSWORD: Optional[str] = Field(None, description="Database password")
    DB_SSL_MODE: str = Field("disable", description="libpq sslmode")

    # Spotify application credentials
    SPOTIFY_CLIENT_ID: Optional[str] = Field(None, description="Spotify application client ID")
    SPOTIFY_CLIENT_SECRET: Optional[str] = Field(None, description="Spotify application client secret")
    SPOTIFY_API_URL: str = Field("https://api.spotify.com/v1", description="Spotify Web API base URL")
    SPOTIFY_ACCOUNTS_URL: str = Field("https://accounts.spotify.com", description="Spotify Accounts base URL")
    SPOTIFY_MARKET: str = Field("US", description="Market used for catalog lookups")
    SPOTIFY_TIMEOUT_SECONDS: float = Field(15.0, description="Timeout for each Spotify request")

    # Promotion
    FEATURED_UPLOADER_ID: str = Field("43385992", description="User whose uploads lead every discovery feed")
    FEATURED_ARTIST_ID: str = Field("12IcqpWZgrkPLmUboLa1Bb", description="Spotify artist imported by default")

    FEED_LIMIT: int = Field(20, description="Default number of tracks in the discovery feed")
    LOG_LEVEL: str = Field("INFO", description="Root log level for the CLI")

    @property
    def spotify_settings(self) -> SpotifySettings:
        """Get Spotify settings as a separate model"""
        return SpotifySettings(
            client_id=self.SPOTIFY_CLIENT_ID,
            client_secret=self.SPOTIFY_CLIENT_SECRET,
            api_url=self.SPOTIFY_API_URL,
            accounts_url=self.SPOTIFY_ACCOUNTS_URL,
            market=self.SPOTIFY_MARKET,
            timeout=self.SPOTIFY_TIMEOUT_SECONDS
        )

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True,
        extra='ignore'
    )

settings = Settings()
