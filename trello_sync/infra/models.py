from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text

from .db import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SourceFileModel(Base):
    __tablename__ = "source_files"

    id = Column(Integer, primary_key=True)
    path = Column(String(1024), nullable=False, unique=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class TrackedTaskModel(Base):
    __tablename__ = "tracked_tasks"

    id = Column(Integer, primary_key=True)
    file_id = Column(
        Integer, ForeignKey("source_files.id", ondelete="CASCADE"), nullable=False, index=True
    )
    position = Column(Integer, nullable=False, default=0)
    title = Column(String(500), nullable=False)
    checklist = Column(Text, nullable=False, default="[]")
    comment = Column(Text, nullable=False)
    state = Column(String(20), nullable=False, default="unsynced")
    card_id = Column(String(64), nullable=True)
    checklist_id = Column(String(64), nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
