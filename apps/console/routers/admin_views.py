"""Admin: management tables for alert rules and email templates (search + pagination)."""
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from apps.console.auth import get_current_admin
from apps.console.deps import get_db
from apps.console.services.alert_rules import (
    SEVERITY_LABELS,
    TARGET_LABELS,
    alert_rule_row,
    list_alert_rules,
    map_alert_rule_row,
    search_alert_rules,
)
from apps.console.services.email_templates import (
    RECIPIENT_LABELS,
    email_template_row,
    list_email_templates,
    map_email_template_row,
    search_email_templates,
)
from apps.console.services.listing import DEFAULT_PAGE_SIZE, PAGE_SIZES, Page, paginate

router = APIRouter(dependencies=[Depends(get_current_admin)])


def _check_page_size(page_size: int) -> int:
    if page_size not in PAGE_SIZES:
        raise HTTPException(status_code=400, detail=f"page_size doit être l'une des valeurs {list(PAGE_SIZES)}")
    return page_size


def _page_body(page: Page, items: list[dict]) -> dict:
    return {
        "items": items,
        "page": page.page,
        "page_size": page.page_size,
        "total": page.total,
        "total_pages": page.total_pages,
    }


@router.get("/alert-rules")
def alert_rules_table(
    q: str = Query("", description="Recherche"),
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    """Rules sorted by name, filtered by ``q``; ``page`` is clamped into range."""
    _check_page_size(page_size)
    rules = [map_alert_rule_row(alert_rule_row(o)) for o in list_alert_rules(db)]
    current = paginate(search_alert_rules(rules, q), page, page_size)
    items = []
    for rule in current.items:
        body = rule.model_dump(by_alias=True, mode="json")
        body["severityLabel"] = SEVERITY_LABELS.get(rule.severity)
        body["targetLabel"] = TARGET_LABELS.get(rule.target)
        items.append(body)
    return _page_body(current, items)


@router.get("/email-templates")
def email_templates_table(
    q: str = Query("", description="Recherche"),
    page: int = Query(1),
    page_size: int = Query(DEFAULT_PAGE_SIZE),
    db: Session = Depends(get_db),
):
    _check_page_size(page_size)
    templates = [map_email_template_row(email_template_row(o)) for o in list_email_templates(db)]
    current = paginate(search_email_templates(templates, q), page, page_size)
    items = []
    for template in current.items:
        body = template.model_dump(by_alias=True, mode="json")
        body["recipientsLabel"] = RECIPIENT_LABELS.get(template.recipients)
        items.append(body)
    return _page_body(current, items)
