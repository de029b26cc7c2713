"""Direct table access (/rest/v1/*): system_settings, alert_rules, email_templates."""
from typing import Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel
from sqlalchemy.orm import Session

from apps.console.auth import get_current_admin, get_optional_admin
from apps.console.deps import get_db
from apps.console.schemas.alert_rule import AlertRuleRowIn
from apps.console.schemas.email_template import EmailTemplateRowIn
from apps.console.services.alert_rules import (
    alert_rule_row,
    create_alert_rule,
    delete_alert_rule,
    list_alert_rules,
    neutralize_general,
    update_alert_rule,
)
from apps.console.services.email_templates import (
    create_email_template,
    delete_email_template,
    email_template_row,
    list_email_templates,
    update_email_template,
)
from apps.console.services.settings_codec import PUBLIC_SETTING_KEYS, SECRET_SETTING_KEYS
from apps.console.services.settings_store import read_setting_rows, upsert_setting_records
from apps.console.services.token_crypto import mask_token


router = APIRouter()

RULE_NOT_FOUND = "Règle introuvable lors de la mise à jour"
RULE_DELETE_NOT_FOUND = "Règle introuvable"
TEMPLATE_NOT_FOUND = "Template email introuvable lors de la mise à jour"
TEMPLATE_DELETE_NOT_FOUND = "Template email introuvable"


class SettingRecordIn(BaseModel):
    key: str
    value: Optional[str] = None
    description: Optional[str] = None


# --- system_settings ------------------------------------------------------


@router.get("/system_settings")
def get_system_settings(
    keys: str = Query(..., description="Comma-separated setting keys"),
    db: Session = Depends(get_db),
    admin: Optional[dict] = Depends(get_optional_admin),
):
    """Rows for the requested keys. Anonymous callers may only read public keys."""
    wanted = [k.strip() for k in keys.split(",") if k.strip()]
    if not wanted:
        raise HTTPException(status_code=400, detail="Aucune clé demandée")
    if admin is None and any(k not in PUBLIC_SETTING_KEYS for k in wanted):
        raise HTTPException(status_code=401, detail="Authentification requise")
    rows = read_setting_rows(db, wanted)
    for row in rows:
        if row["key"] in SECRET_SETTING_KEYS:
            row["value"] = mask_token(row["value"]) if row["value"] else row["value"]
    return rows


@router.post("/system_settings", dependencies=[Depends(get_current_admin)])
def upsert_system_settings(
    records: Union[list[SettingRecordIn], SettingRecordIn],
    db: Session = Depends(get_db),
):
    """Upsert on ``key``."""
    if isinstance(records, SettingRecordIn):
        records = [records]
    if not records:
        raise HTTPException(status_code=400, detail="Aucun paramètre fourni")
    saved = upsert_setting_records(db, [r.model_dump() for r in records])
    return [{"key": o.key, "description": o.description} for o in saved]


# --- alert_rules ----------------------------------------------------------


@router.get("/alert_rules", dependencies=[Depends(get_current_admin)])
def get_alert_rules(db: Session = Depends(get_db)):
    return [alert_rule_row(o) for o in list_alert_rules(db)]


@router.post("/alert_rules", status_code=201, dependencies=[Depends(get_current_admin)])
def post_alert_rule(data: AlertRuleRowIn, db: Session = Depends(get_db)):
    obj = create_alert_rule(db, neutralize_general(data.model_dump()))
    return alert_rule_row(obj)


@router.patch("/alert_rules/{rule_id}", dependencies=[Depends(get_current_admin)])
def patch_alert_rule(rule_id: str, data: AlertRuleRowIn, db: Session = Depends(get_db)):
    obj = update_alert_rule(db, rule_id, neutralize_general(data.model_dump()))
    if not obj:
        raise HTTPException(status_code=404, detail=RULE_NOT_FOUND)
    return alert_rule_row(obj)


@router.delete("/alert_rules/{rule_id}", status_code=204, dependencies=[Depends(get_current_admin)])
def remove_alert_rule(rule_id: str, db: Session = Depends(get_db)):
    if not delete_alert_rule(db, rule_id):
        raise HTTPException(status_code=404, detail=RULE_DELETE_NOT_FOUND)
    return Response(status_code=204)


# --- email_templates ------------------------------------------------------


@router.get("/email_templates", dependencies=[Depends(get_current_admin)])
def get_email_templates(db: Session = Depends(get_db)):
    return [email_template_row(o) for o in list_email_templates(db)]


@router.post("/email_templates", status_code=201, dependencies=[Depends(get_current_admin)])
def post_email_template(data: EmailTemplateRowIn, db: Session = Depends(get_db)):
    obj = create_email_template(db, data.model_dump())
    return email_template_row(obj)


@router.patch("/email_templates/{template_id}", dependencies=[Depends(get_current_admin)])
def patch_email_template(template_id: str, data: EmailTemplateRowIn, db: Session = Depends(get_db)):
    obj = update_email_template(db, template_id, data.model_dump())
    if not obj:
        raise HTTPException(status_code=404, detail=TEMPLATE_NOT_FOUND)
    return email_template_row(obj)


@router.delete("/email_templates/{template_id}", status_code=204, dependencies=[Depends(get_current_admin)])
def remove_email_template(template_id: str, db: Session = Depends(get_db)):
    if not delete_email_template(db, template_id):
        raise HTTPException(status_code=404, detail=TEMPLATE_DELETE_NOT_FOUND)
    return Response(status_code=204)
