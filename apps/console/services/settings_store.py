"""Чтение и запись system_settings; агрегаты для admin/public функций."""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Iterable, Mapping

from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.orm import Session

from apps.console.deps import get_secrets_key
from apps.console.models.system_setting import SystemSetting
from apps.console.schemas.settings import SiteSettings
from apps.console.services.alert_rules import alert_rule_row, list_alert_rules, map_alert_rule_row
from apps.console.services.email_templates import (
    email_template_row,
    list_email_templates,
    map_email_template_row,
)
from apps.console.services.settings_codec import (
    ADMIN_SETTING_KEYS,
    LLM_KEY,
    PRICING_KEYS,
    SECRET_SETTING_KEYS,
    TRIAL_KEYS,
    decode_llm_settings,
    decode_payment_settings,
    decode_pricing_settings,
    decode_site_settings,
    decode_trial_settings,
    encode_llm_settings,
    encode_payment_settings,
    encode_pricing_settings,
    encode_site_settings,
    pricing_from_wire,
    sanitize_payment_payload,
    to_public_llm_settings,
)
from apps.console.services.token_crypto import decrypt_secret, encrypt_secret, is_encrypted, is_masked

logger = logging.getLogger(__name__)

NOTHING_TO_SAVE_ERROR = "Aucun paramètre fourni"


class InvalidSettingsPayload(ValueError):
    """An admin-update-settings section that cannot be read."""


def read_setting_rows(db: Session, keys: Iterable[str]) -> list[dict[str, Any]]:
    """Rows for ``keys`` with secret values decrypted."""
    keys = list(keys)
    rows = db.execute(select(SystemSetting).where(SystemSetting.key.in_(keys))).scalars().all()
    out = []
    for row in rows:
        value = row.value
        if row.key in SECRET_SETTING_KEYS:
            value = decrypt_secret(value, get_secrets_key())
        out.append({"key": row.key, "value": value, "description": row.description})
    return out


def setting_row(obj: SystemSetting) -> dict[str, Any]:
    return {
        "key": obj.key,
        "value": obj.value,
        "description": obj.description,
        "updated_at": obj.updated_at.isoformat() if obj.updated_at else None,
    }


def upsert_setting_records(db: Session, records: Iterable[Mapping[str, Any]]) -> list[SystemSetting]:
    """Insert or update on ``key``. Secret values are encrypted before they are stored.

    A secret sent back in its masked form (``****1234``) leaves the stored value as is.
    """
    saved = []
    for record in records:
        key = record["key"]
        value = record.get("value")
        if key in SECRET_SETTING_KEYS and is_masked(value):
            logger.info("masked value for %s ignored, stored secret kept", key)
            continue
        if key in SECRET_SETTING_KEYS and value and not is_encrypted(value):
            value = encrypt_secret(value, get_secrets_key())
        obj = db.get(SystemSetting, key)
        if obj is None:
            obj = SystemSetting(key=key)
            db.add(obj)
        obj.value = value
        if record.get("description") is not None:
            obj.description = record["description"]
        obj.updated_at = datetime.utcnow()
        saved.append(obj)
    db.commit()
    logger.info("system_settings upserted keys=%s", [o.key for o in saved])
    return saved


def _llm_value(rows: list[dict[str, Any]]) -> Any:
    for row in rows:
        if row["key"] == LLM_KEY:
            return row["value"]
    return None


def get_admin_settings(db: Session) -> dict[str, Any]:
    rows = read_setting_rows(db, ADMIN_SETTING_KEYS)
    llm = decode_llm_settings(_llm_value(rows))
    alert_rules = [map_alert_rule_row(alert_rule_row(o)) for o in list_alert_rules(db)]
    templates = [map_email_template_row(email_template_row(o)) for o in list_email_templates(db)]
    return {
        "success": True,
        "settings": decode_site_settings(rows).to_wire(),
        "pricing": decode_pricing_settings(rows).to_wire(),
        "payment": decode_payment_settings(rows).to_wire(),
        "llm": llm.model_dump(by_alias=True, mode="json"),
        "alertRules": [r.model_dump(by_alias=True, mode="json") for r in alert_rules],
        "emailTemplates": [t.model_dump(by_alias=True, mode="json") for t in templates],
    }


def _section(parse, raw: Any, name: str):
    if not isinstance(raw, Mapping):
        raise InvalidSettingsPayload(f"Section {name} invalide")
    try:
        return parse(raw)
    except ValidationError as e:
        raise InvalidSettingsPayload(f"Section {name} invalide") from e


def _payment_section(raw: Mapping[str, Any]):
    payment = sanitize_payment_payload(raw)
    if payment is None:
        raise InvalidSettingsPayload("Section payment invalide")
    return payment


def update_admin_settings(db: Session, payload: Mapping[str, Any]) -> int:
    """Save the sections present in ``payload``; returns the number of records written."""
    records: list[dict[str, Any]] = []
    if payload.get("settings"):
        records += encode_site_settings(_section(SiteSettings.model_validate, payload["settings"], "settings"))
    if payload.get("pricing"):
        records += encode_pricing_settings(_section(pricing_from_wire, payload["pricing"], "pricing"))
    if payload.get("payment"):
        records += encode_payment_settings(_section(_payment_section, payload["payment"], "payment"))
    if payload.get("llm"):
        records += encode_llm_settings(_section(decode_llm_settings, payload["llm"], "llm"))
    if not records:
        raise ValueError(NOTHING_TO_SAVE_ERROR)
    upsert_setting_records(db, records)
    return len(records)


def get_public_pricing(db: Session) -> dict[str, Any]:
    rows = read_setting_rows(db, PRICING_KEYS + TRIAL_KEYS)
    pricing_rows = [r for r in rows if r["key"] in PRICING_KEYS]
    return {
        "success": True,
        "pricing": decode_pricing_settings(pricing_rows).to_wire(),
        "trial": decode_trial_settings(rows).to_wire(),
    }


def get_public_llm_settings(db: Session) -> dict[str, Any]:
    rows = read_setting_rows(db, (LLM_KEY,))
    return {"success": True, "settings": to_public_llm_settings(_llm_value(rows)).to_wire()}
