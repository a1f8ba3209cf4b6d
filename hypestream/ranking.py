"""Discovery feed ordering"""
from datetime import datetime
from typing import Iterable, List, Optional

from sqlalchemy import case

DEFAULT_FEED_LIMIT = 20

FEATURED_TIER = 0
OWN_UPLOADS_TIER = 1
EVERYONE_ELSE_TIER = 2

def feed_tier(uploaded_by: Optional[str], viewing_user_id: str, featured_uploader_id: str) -> int:
    """Tier of a track for one viewer, lower tiers are shown first"""
    if uploaded_by is not None and uploaded_by == featured_uploader_id:
        return FEATURED_TIER
    if uploaded_by is not None and uploaded_by == viewing_user_id:
        return OWN_UPLOADS_TIER
    return EVERYONE_ELSE_TIER

def rank(tracks: Iterable, viewing_user_id: str, featured_uploader_id: str,
         limit: int = DEFAULT_FEED_LIMIT) -> List:
    """
    Order tracks for a viewer's discovery feed.

    Featured uploader first, then the viewer's own uploads, then everything
    else. Newest first inside a tier, higher id first on equal timestamps.
    Plays and likes play no part in the order.

    Args:
        tracks: Objects with uploaded_by, created_at and id attributes
        viewing_user_id: User the feed is built for
        featured_uploader_id: Account promoted to the top of every feed
        limit: Maximum number of tracks returned
    """
    if limit < 0:
        raise ValueError(f"Feed limit cannot be negative: {limit}")

    newest_first = sorted(
        tracks,
        key=lambda t: (t.created_at is not None, t.created_at or datetime.min, t.id or 0),
        reverse=True,
    )
    # sorted() is stable, so the tier pass keeps the recency order within a tier
    by_tier = sorted(
        newest_first,
        key=lambda t: feed_tier(t.uploaded_by, viewing_user_id, featured_uploader_id),
    )
    return by_tier[:limit]

def tier_expression(uploaded_by_column, viewing_user_id: str, featured_uploader_id: str):
    """The feed_tier policy as a SQL CASE expression for ORDER BY"""
    return case(
        (uploaded_by_column == featured_uploader_id, FEATURED_TIER),
        (uploaded_by_column == viewing_user_id, OWN_UPLOADS_TIER),
        else_=EVERYONE_ELSE_TIER,
    )
