"""Модели SQLAlchemy."""
from apps.console.models.admin import AdminUser
from apps.console.models.system_setting import SystemSetting
from apps.console.models.alert_rule import AlertRule
from apps.console.models.email_template import EmailTemplate
from apps.console.models.support_message import SupportMessage

__all__ = [
    "AdminUser",
    "SystemSetting",
    "AlertRule",
    "EmailTemplate",
    "SupportMessage",
]
