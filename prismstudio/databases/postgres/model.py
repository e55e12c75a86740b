from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, DateTime, Date, Index, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.sql import func, text

from .database import Base

# JSONB on Postgres, plain JSON elsewhere (tests run on SQLite)
JSONType = JSON().with_variant(JSONB(), "postgresql")


class BaseAuditMixin:
    """Reusable audit columns for all tables."""
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class User(Base, BaseAuditMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=True)
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    domain = Column(String(100), nullable=True)
    phone = Column(String(32), nullable=True)
    education = Column(String(255), nullable=True)

    # Relationships
    certificates = relationship("Certificate", back_populates="user")

    @property
    def display_name(self):
        return self.name or self.full_name


class Certificate(Base, BaseAuditMixin):
    __tablename__ = "certificates"

    id = Column(Integer, primary_key=True, index=True)
    certificate_id = Column(String(16), nullable=False, unique=True, index=True)

    # Foreign Keys to users
    user_id = Column(Integer, ForeignKey("users.id", ondelete="RESTRICT"), nullable=False, index=True)

    # Dates
    issued_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    completion_date = Column(Date, nullable=True)
    valid_until = Column(DateTime(timezone=True), nullable=True)
    duration_months = Column(Integer, nullable=True)

    # Content
    skills = Column(JSONType, nullable=True)
    grade = Column(String(16), nullable=True)
    project_title = Column(String(255), nullable=True)
    supervisor_name = Column(String(255), nullable=True)
    supervisor_email = Column(String(255), nullable=True)
    cert_type = Column(String(32), nullable=False, server_default=text("'standard'"))
    pdf_url = Column(String(1024), nullable=True)

    # Integrity & revocation
    cert_hash = Column(String(128), nullable=False)
    is_verified = Column(Boolean, nullable=False, server_default=text("true"))
    is_active = Column(Boolean, nullable=False, server_default=text("true"))

    # Additional metadata (column name 'metadata', mapped to attribute 'metadata_')
    metadata_ = Column('metadata', JSONType, nullable=True)

    # Relationships
    user = relationship("User", back_populates="certificates")


class RateLimit(Base, BaseAuditMixin):
    __tablename__ = "rate_limits"

    id = Column(Integer, primary_key=True, index=True)
    ip_address = Column(String(64), nullable=False)
    endpoint = Column(String(255), nullable=False)
    request_count = Column(Integer, nullable=False, server_default=text("1"))
    window_start = Column(DateTime(timezone=True), nullable=False)
    blocked_until = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("ip_address", "endpoint", name="uq_rate_limits_ip_endpoint"),
    )


class VerificationLog(Base, BaseAuditMixin):
    __tablename__ = "verification_logs"

    id = Column(Integer, primary_key=True, index=True)
    certificate_id = Column(String(255), nullable=False, index=True)
    ip_address = Column(String(64), nullable=False)
    user_agent = Column(String(512), nullable=True)
    success = Column(Boolean, nullable=False)
    request_method = Column(String(8), nullable=False)
    verified_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index("ix_verification_logs_ip_verified_at", "ip_address", "verified_at"),
    )
