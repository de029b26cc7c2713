"""Модель шаблона письма."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Boolean, DateTime
from sqlalchemy.dialects.postgresql import JSONB

from apps.console.database import Base


class EmailTemplate(Base):
    __tablename__ = "email_templates"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(Text, nullable=False)
    subject = Column(Text, nullable=False)
    recipients = Column(String(16), nullable=False, default="user")
    cc = Column(JSONB, nullable=False, default=list)
    bcc = Column(JSONB, nullable=False, default=list)
    body = Column(Text, nullable=False)
    signature = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    metadata_json = Column("metadata", JSONB, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
