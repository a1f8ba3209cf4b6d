"""Payload models validated at the service boundary"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field

from hypestream.models.domain import InteractionType, TargetType

class UserProfile(BaseModel):
    """Identity claims received on authentication"""
    id: str = Field(min_length=1, description="Identity provider subject")
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None

class ProgressReport(BaseModel):
    """Cumulative seconds listened, reported by the playing client"""
    duration: int = Field(ge=0, description="Seconds listened so far")

class InteractionRequest(BaseModel):
    target_id: str = Field(min_length=1)
    target_type: TargetType
    interaction_type: InteractionType

class TrackUpload(BaseModel):
    """A track uploaded by a user"""
    title: str = Field(min_length=1)
    artist: str = Field(min_length=1)
    album_cover: Optional[str] = None
    spotify_track_id: Optional[str] = None
    duration: Optional[int] = Field(None, ge=0, description="Length in seconds")
    preview_url: Optional[str] = None

class SpotifyTokens(BaseModel):
    access_token: str = Field(min_length=1)
    refresh_token: Optional[str] = None

class TrackResponse(BaseModel):
    """Serialized view of a track row"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    title: str
    artist: str
    album_cover: Optional[str] = None
    spotify_track_id: Optional[str] = None
    duration: Optional[int] = None
    preview_url: Optional[str] = None
    uploaded_by: Optional[str] = None
    plays: int
    likes: int
    shares: int
    created_at: Optional[datetime] = None

class UserResponse(BaseModel):
    """Serialized view of a user row, without provider tokens"""
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profile_image_url: Optional[str] = None
    coin_balance: int
    spotify_connected: bool = False
