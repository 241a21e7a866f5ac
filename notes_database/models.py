from sqlalchemy import Boolean, Column, Integer, String, DateTime, Text, ForeignKey
from sqlalchemy.orm import declarative_base, relationship
from datetime import datetime, timezone

Base = declarative_base()

AUTH_PROVIDER_LOCAL = "local"
AUTH_PROVIDER_EXTERNAL = "external"

# Largest value an INTEGER primary key can hold (signed 64-bit).
MAX_ID = 2**63 - 1


def id_in_range(value):
    return 1 <= value <= MAX_ID


def utcnow():
    """Naive UTC timestamp; every datetime column stores UTC without tzinfo."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# PUBLIC_INTERFACE
class User(Base):
    """
    SQLAlchemy model for an account in the personal notes manager app.

    Local accounts carry a password hash; accounts linked to the external
    identity provider carry its subject id instead. The OTP columns hold the
    single pending email verification challenge, if any.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(254), unique=True, index=True, nullable=False)
    name = Column(String(128), nullable=False)
    hashed_password = Column(String(256), nullable=True)
    external_id = Column(String(255), unique=True, index=True, nullable=True)
    avatar_url = Column(String(1024), nullable=True)
    is_email_verified = Column(Boolean, default=False, nullable=False)
    auth_provider = Column(String(16), default=AUTH_PROVIDER_LOCAL, nullable=False)

    otp_code = Column(String(6), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_sent_at = Column(DateTime, nullable=True)

    # Declared for a password reset flow that is not exposed yet.
    password_reset_token = Column(String(256), nullable=True)
    password_reset_expires = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)

    notes = relationship("Note", back_populates="owner")

    @property
    def has_pending_otp(self):
        return self.otp_code is not None and self.otp_expires_at is not None


# PUBLIC_INTERFACE
class Note(Base):
    """
    SQLAlchemy model for a note.
    """
    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    is_pinned = Column(Boolean, default=False, nullable=False)
    background_color = Column(String(7), default="#ffffff", nullable=False)
    created_at = Column(DateTime, default=utcnow, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, index=True)

    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    owner = relationship("User", back_populates="notes")

    tag_rows = relationship(
        "NoteTag",
        order_by="NoteTag.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def tags(self):
        return [row.name for row in self.tag_rows]

    @tags.setter
    def tags(self, names):
        self.tag_rows = [NoteTag(position=i, name=name) for i, name in enumerate(names)]


# PUBLIC_INTERFACE
class NoteTag(Base):
    """
    One tag of a note; position keeps the order the owner gave.
    """
    __tablename__ = "note_tags"

    id = Column(Integer, primary_key=True)
    note_id = Column(Integer, ForeignKey("notes.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False, index=True)
