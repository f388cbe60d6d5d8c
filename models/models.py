"""
Database models for the application.
"""
import enum
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, DateTime, Date, Boolean, Text, ForeignKey, Enum as SAEnum, Index
)
from sqlalchemy.orm import relationship
from db_config import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value):
    """Attach UTC to naive datetimes read back from backends without timezone support."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


# --- ENUM Types ---
class UserRoleEnum(enum.Enum):
    user = "user"
    eleve = "eleve"
    enseignant = "enseignant"
    admin = "admin"


class AiProviderEnum(enum.Enum):
    OpenAI = "OpenAI"
    Groq = "Groq"
    Google = "Google"


# --- Model Definitions ---

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    role = Column(SAEnum(UserRoleEnum, name="user_role_enum"), nullable=False, default=UserRoleEnum.user)

    xp = Column(Integer, nullable=False, default=0)
    level = Column(Integer, nullable=False, default=1)
    skin = Column(String(50), nullable=False, default="base")

    birth_date = Column(Date, nullable=True)
    school_grade = Column(String(50), nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime(timezone=True), nullable=True)

    sessions = relationship("UserSession", back_populates="user", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="owner", cascade="all, delete-orphan")
    documents = relationship("Document", back_populates="owner", cascade="all, delete-orphan")
    history_entries = relationship("HistoryEntry", back_populates="user", cascade="all, delete-orphan")
    subscriber = relationship("Subscriber", back_populates="user", uselist=False)

    @property
    def display_name(self) -> str:
        full_name = " ".join(part for part in (self.first_name, self.last_name) if part)
        return full_name or self.email.split("@")[0]


class UserSession(Base):
    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    session_token = Column(String(512), nullable=False, unique=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="sessions")


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    owner = relationship("User", back_populates="categories")
    # passive_deletes leaves the ON DELETE SET NULL to the database
    documents = relationship("Document", back_populates="category", passive_deletes=True)


class Document(Base):
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_user_created", "user_id", "created_at"),
    )

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(500), nullable=False)
    storage_bucket = Column(String(100), nullable=True)
    storage_path = Column(String(500), nullable=True)
    mime_type = Column(String(100), nullable=True)
    content = Column(Text, nullable=True)
    summary = Column(Text, nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="SET NULL"), nullable=True, index=True)
    is_shared = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    owner = relationship("User", back_populates="documents")
    category = relationship("Category", back_populates="documents")

    @property
    def has_file(self) -> bool:
        return bool(self.storage_bucket and self.storage_path)


class HistoryEntry(Base):
    """Append-only activity log; rows are never updated."""
    __tablename__ = "history"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    action_type = Column(String(50), nullable=False)
    document_name = Column(String(500), nullable=True)
    xp_gained = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)

    user = relationship("User", back_populates="history_entries")


class Subscriber(Base):
    __tablename__ = "subscribers"

    id = Column(Integer, primary_key=True, index=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    message = Column(Text, nullable=True)
    stripe_customer_id = Column(String(255), nullable=True)
    subscribed = Column(Boolean, nullable=False, default=False)
    subscription_tier = Column(String(50), nullable=True)
    trial_end = Column(DateTime(timezone=True), nullable=True)
    subscription_end = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("User", back_populates="subscriber")
