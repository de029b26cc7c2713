"""Alert-rule schemas: domain view, write payload, admin form and table row."""
from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from apps.console.schemas.base import Number, WireModel
from apps.console.services.setting_values import to_number

TriggerType = Literal["scheduled", "login", "assistant_access"]
AlertTarget = Literal["subscription", "tokens", "general"]
Comparator = Literal["<", "<=", "=", ">=", ">"]
Severity = Literal["info", "warning", "error"]
AppliesToRole = Literal["pro", "premium", "any"]
AccountStatus = Literal["active", "inactive", "expired"]

ACCOUNT_STATUSES = ("active", "inactive", "expired")


def _finite_threshold(value: Any) -> Union[int, float]:
    if isinstance(value, str) and not value.strip():
        raise ValueError("threshold must be a number")
    number = to_number(value)
    if number is None:
        raise ValueError("threshold must be a finite number")
    return number


class AlertRuleMetadata(WireModel):
    """``status_filter`` is only meaningful for ``general`` announcements; other keys are kept as-is."""

    model_config = ConfigDict(extra="allow")

    status_filter: Optional[list[AccountStatus]] = None

    @field_validator("status_filter", mode="before")
    @classmethod
    def known_statuses(cls, v):
        if v is None:
            return None
        if not isinstance(v, list):
            return []
        return [s for s in v if s in ACCOUNT_STATUSES]


class AlertRule(WireModel):
    id: str
    name: str
    description: Optional[str] = None
    trigger_type: TriggerType
    target: AlertTarget
    comparator: Comparator
    threshold: Number
    severity: Severity
    message_template: str
    applies_to_role: AppliesToRole = "any"
    is_blocking: bool = False
    is_active: bool = True
    metadata: AlertRuleMetadata = Field(default_factory=AlertRuleMetadata)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def status_filter(self) -> list[str]:
        if self.target != "general":
            return []
        return list(self.metadata.status_filter or [])


class AlertRuleInput(WireModel):
    name: str
    description: Optional[str] = None
    trigger_type: TriggerType = "scheduled"
    target: AlertTarget = "subscription"
    comparator: Comparator = "="
    threshold: Number = 0
    severity: Severity = "info"
    message_template: str
    applies_to_role: AppliesToRole = "any"
    is_blocking: Optional[bool] = None
    is_active: Optional[bool] = None
    metadata: Optional[AlertRuleMetadata] = None

    @field_validator("threshold", mode="before")
    @classmethod
    def finite_threshold(cls, v):
        return _finite_threshold(v)


class AlertRuleForm(WireModel):
    """Editable draft; the threshold is kept as typed text until submission."""

    name: str = ""
    description: str = ""
    trigger_type: TriggerType = "scheduled"
    target: AlertTarget = "subscription"
    comparator: Comparator = "="
    threshold: str = "0"
    severity: Severity = "info"
    message_template: str = ""
    applies_to_role: AppliesToRole = "any"
    is_blocking: bool = False
    is_active: bool = True
    status_filter: list[AccountStatus] = Field(default_factory=list)


class AlertRuleRowIn(BaseModel):
    """Snake_case row written to ``alert_rules``."""

    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    trigger_type: TriggerType
    target: AlertTarget
    comparator: Comparator
    threshold: float
    severity: Severity
    message_template: str = Field(..., min_length=1)
    applies_to_role: AppliesToRole = "any"
    is_blocking: bool = False
    is_active: bool = True
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("threshold", mode="before")
    @classmethod
    def finite_threshold(cls, v):
        return _finite_threshold(v)
