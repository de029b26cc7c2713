"""Messages sent through the support contact form."""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Text, DateTime

from apps.console.database import Base


class SupportMessage(Base):
    __tablename__ = "support_messages"

    id = Column(Integer, primary_key=True, index=True)
    user_email = Column(String(255), nullable=False, index=True)
    subject = Column(Text, nullable=False)
    message = Column(Text, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
