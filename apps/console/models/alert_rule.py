"""Admin-defined alert rules (evaluated elsewhere)."""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, Text, Float, Boolean, DateTime
from sqlalchemy.dialects.postgresql import JSONB

from apps.console.database import Base


class AlertRule(Base):
    __tablename__ = "alert_rules"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(Text, nullable=False)
    description = Column(Text, nullable=True)
    trigger_type = Column(String(32), nullable=False)
    target = Column(String(32), nullable=False, index=True)
    comparator = Column(String(2), nullable=False)
    threshold = Column(Float, nullable=False, default=0)
    severity = Column(String(16), nullable=False)
    message_template = Column(Text, nullable=False)
    applies_to_role = Column(String(16), nullable=False, default="any")
    is_blocking = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    # "metadata" is reserved on declarative classes
    metadata_json = Column("metadata", JSONB, nullable=False, default=dict)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
