"""
Content and bookkeeping models: contact inquiries, legal documents and
payment webhook logs.
"""

from sqlalchemy import Column, JSON, String, Text

from healthle.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class Contact(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Inquiry sent from the public contact form."""

    __tablename__ = "contacts"

    TYPES = ("product", "service", "recruitment", "other")

    name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    company = Column(String(255), nullable=True)
    type = Column(String(20), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")


class LegalDocument(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Terms, privacy policy and commerce disclosures, one per ``type``."""

    __tablename__ = "legal_documents"

    type = Column(String(50), nullable=False, unique=True)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    version = Column(String(20), nullable=True)
    effective_date = Column(String(20), nullable=True)


class WebhookLog(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Processing record of one payment processor webhook event."""

    __tablename__ = "webhook_logs"

    PROCESSING = "processing"
    SUCCESS = "success"
    FAILED = "failed"

    stripe_event_id = Column(String(255), nullable=False, index=True)
    event_type = Column(String(100), nullable=False)
    status = Column(String(20), nullable=False, default=PROCESSING)
    processed_at = Column(String, nullable=True)
    processed_data = Column(JSON, nullable=True)
    error_message = Column(Text, nullable=True)
