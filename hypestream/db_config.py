"""Database configuration and credentials management"""
from dataclasses import dataclass
from typing import Optional

from hypestream.config import Settings, settings as default_settings

@dataclass
class DatabaseCredentials:
    """Database credentials container with validation"""
    host: str
    port: str
    name: str
    user: str
    password: str
    ssl_mode: str = 'disable'

    def to_connection_string(self) -> str:
        """Generate database connection string"""
        return (
            f"postgresql+psycopg2://{self.user}:{self.password}@{self.host}:{self.port}/"
            f"{self.name}?sslmode={self.ssl_mode}"
        )

    @classmethod
    def from_settings(cls, config: Settings) -> 'DatabaseCredentials':
        """Create credentials from the DB_* settings"""
        if not config.DB_PASSWORD:
            raise ValueError("DB_PASSWORD setting is required when DATABASE_URL is not set")
        return cls(
            host=config.DB_HOST,
            port=config.DB_PORT,
            name=config.DB_NAME,
            user=config.DB_USER,
            password=config.DB_PASSWORD,
            ssl_mode=config.DB_SSL_MODE
        )

class DatabaseManager:
    """Resolves the connection string the application should use"""

    @classmethod
    def initialize_from_env(cls, config: Optional[Settings] = None) -> str:
        """
        Resolve the database connection string from settings.

        DATABASE_URL wins when present; otherwise the URL is assembled
        from the individual DB_* settings.

        Raises:
            ValueError: If neither DATABASE_URL nor DB_PASSWORD is set
        """
        config = config or default_settings
        if config.DATABASE_URL:
            return config.DATABASE_URL

        return DatabaseCredentials.from_settings(config).to_connection_string()
