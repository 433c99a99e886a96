"""Data models for Nest insights persistence."""

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base

# SQLAlchemy base
Base = declarative_base()

ActivityTypeEnum = Enum(
    "save",
    "read",
    "highlight",
    "organize",
    "search",
    name="activity_type",
    native_enum=False,
)


class CollectionRecord(Base):
    """Named folder that saved items can be filed into."""

    __tablename__ = "collections"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class SavedItem(Base):
    """A saved link and its inbox/collection placement."""

    __tablename__ = "saved_items"

    id = Column(String(64), primary_key=True)
    url = Column(Text, nullable=False)
    title = Column(Text, nullable=False, default="")
    domain = Column(String(255), nullable=False, default="")
    category = Column(String(64), nullable=False, default="general")
    in_inbox = Column(Boolean, nullable=False, default=True)
    collection_id = Column(String(64), ForeignKey("collections.id"), nullable=True)
    user_note = Column(Text, nullable=False, default="")
    ai_summary = Column(Text, nullable=True)
    highlights = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class TagRecord(Base):
    """Label that can be attached to saved items."""

    __tablename__ = "tags"

    id = Column(Integer, primary_key=True)
    name = Column(String(128), nullable=False, unique=True)


class ItemTag(Base):
    """Association between a saved item and a tag."""

    __tablename__ = "item_tags"
    __table_args__ = (UniqueConstraint("item_id", "tag_id", name="uq_item_tags_item_tag"),)

    id = Column(Integer, primary_key=True)
    item_id = Column(String(64), ForeignKey("saved_items.id"), nullable=False)
    tag_id = Column(Integer, ForeignKey("tags.id"), nullable=False)


class ActivityEventRecord(Base):
    """Append-only log of user actions."""

    __tablename__ = "activity_events"

    id = Column(Integer, primary_key=True)
    event_type = Column(ActivityTypeEnum, nullable=False)
    item_id = Column(String(64), nullable=True)
    collection_id = Column(String(64), nullable=True)
    event_metadata = Column("metadata", JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class KeyValueEntry(Base):
    """Namespaced JSON value stored under a single key."""

    __tablename__ = "kv_entries"

    key = Column(String(255), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
