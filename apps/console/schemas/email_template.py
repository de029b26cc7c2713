"""Email-template schemas."""
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field

from apps.console.schemas.base import WireModel

Recipients = Literal["user", "admin", "both"]


class EmailTemplate(WireModel):
    id: str
    name: str
    subject: str
    recipients: Recipients = "user"
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    body: str
    signature: Optional[str] = None
    is_active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class EmailTemplateInput(WireModel):
    name: str
    subject: str
    recipients: Recipients = "user"
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    body: str
    signature: Optional[str] = None
    is_active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)


class EmailTemplateForm(WireModel):
    """Editable draft; cc/bcc are comma-separated text."""

    name: str = ""
    subject: str = ""
    recipients: Recipients = "user"
    cc: str = ""
    bcc: str = ""
    body: str = ""
    signature: str = ""
    is_active: bool = True


class EmailTemplateRowIn(BaseModel):
    """Snake_case row written to ``email_templates``."""

    name: str = Field(..., min_length=1)
    subject: str = Field(..., min_length=1)
    recipients: Recipients = "user"
    cc: list[str] = Field(default_factory=list)
    bcc: list[str] = Field(default_factory=list)
    body: str = Field(..., min_length=1)
    signature: Optional[str] = None
    is_active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)
