"""Key/value platform settings. Values are text: scalars as strings, structured sections as JSON."""
from datetime import datetime
from sqlalchemy import Column, DateTime, Text

from apps.console.database import Base


class SystemSetting(Base):
    __tablename__ = "system_settings"

    key = Column(Text, primary_key=True)
    value = Column(Text, nullable=True)
    description = Column(Text, nullable=True)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
