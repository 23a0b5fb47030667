from datetime import datetime
from sqlalchemy import Column, Integer, String, Float, DateTime, Text, UniqueConstraint
from .session import Base


class Photo(Base):
    """A campus photo. Only approved photos with a location are played."""
    __tablename__ = "photos"

    id = Column(String(64), primary_key=True)
    url = Column(Text, nullable=False)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
    building = Column(String(100), nullable=True)
    floor = Column(Integer, nullable=True)
    added_by = Column(String(100), nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    status = Column(String(20), default="pending", index=True)


class DailyPhotoCache(Base):
    """The photo selection shared by every player on one reference date."""
    __tablename__ = "daily_photo_cache"

    date = Column(String(10), primary_key=True)
    # JSON list of photo ids, in round order
    photo_ids = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class DailyScore(Base):
    """A submitted daily challenge score."""
    __tablename__ = "daily_scores"
    __table_args__ = (UniqueConstraint("date", "user_id", name="uq_daily_scores_date_user"),)

    id = Column(Integer, primary_key=True, index=True)
    date = Column(String(10), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    score = Column(Integer, nullable=False)
    time_taken = Column(Integer, nullable=False)
    user_id = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)


class StorageEntry(Base):
    """Durable key-value entry, namespaced per player."""
    __tablename__ = "storage_entries"

    namespace = Column(String(128), primary_key=True)
    key = Column(String(255), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
