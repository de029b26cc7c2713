"""Alert rules: form validation, row mapping and search."""
import pytest

from apps.console.schemas.alert_rule import AlertRuleForm, AlertRuleInput
from apps.console.services.alert_rules import (
    MESSAGE_REQUIRED_ERROR,
    NAME_REQUIRED_ERROR,
    THRESHOLD_ERROR,
    AlertRuleValidationError,
    coerce_alert_rule_input,
    delete_confirmation,
    form_to_input,
    map_alert_rule_row,
    rule_to_form,
    rule_to_input,
    search_alert_rules,
    to_db_alert_rule,
)

ROUND_TRIP_FIELDS = (
    "name",
    "trigger_type",
    "target",
    "comparator",
    "threshold",
    "severity",
    "applies_to_role",
    "is_blocking",
    "is_active",
)


def _row(**overrides):
    row = {
        "id": "r-1",
        "name": "Expiring soon",
        "description": "Rappel avant échéance",
        "trigger_type": "login",
        "target": "subscription",
        "comparator": "<=",
        "threshold": 7,
        "severity": "warning",
        "message_template": "Your plan expires in {{days}} days",
        "applies_to_role": "pro",
        "is_blocking": False,
        "is_active": True,
        "metadata": {},
        "created_at": "2026-01-10T08:00:00",
        "updated_at": None,
    }
    row.update(overrides)
    return row


def test_scenario_expiring_soon_rule():
    form = AlertRuleForm(
        name="Expiring soon",
        target="subscription",
        comparator="<=",
        threshold="7",
        severity="warning",
        message_template="Your plan expires in {{days}} days",
        applies_to_role="any",
    )
    row = to_db_alert_rule(form_to_input(form))
    assert row["threshold"] == 7
    assert isinstance(row["threshold"], int)
    assert row["is_active"] is True
    assert row["is_blocking"] is False
    assert row["metadata"] == {}


def test_defaults_when_flags_absent():
    payload = AlertRuleInput(name="Jetons bas", message_template="Il vous reste {{tokens}} jetons", threshold="1000")
    row = to_db_alert_rule(coerce_alert_rule_input(payload))
    assert row["is_active"] is True
    assert row["is_blocking"] is False
    mapped = map_alert_rule_row({"id": 1, **{k: v for k, v in row.items() if not k.startswith("is_")}})
    assert mapped.is_active is True
    assert mapped.is_blocking is False
    assert mapped.id == "1"


@pytest.mark.parametrize("comparator,threshold", [("<", "30"), (">=", "abc"), (">", "")])
def test_general_announcement_is_neutralized(comparator, threshold):
    form = AlertRuleForm(
        name="Maintenance",
        target="general",
        comparator=comparator,
        threshold=threshold,
        message_template="Maintenance prévue ce soir",
        status_filter=["inactive"],
    )
    row = to_db_alert_rule(form_to_input(form))
    assert row["comparator"] == "="
    assert row["threshold"] == 0
    assert row["metadata"] == {"statusFilter": ["inactive"]}


def test_general_input_without_form_is_neutralized_too():
    payload = AlertRuleInput(
        name="Annonce",
        target="general",
        comparator=">",
        threshold=99,
        message_template="Bonjour {{user_name}}",
        metadata={"statusFilter": ["expired", "unknown"]},
    )
    row = to_db_alert_rule(payload)
    assert (row["comparator"], row["threshold"]) == ("=", 0)
    assert row["metadata"] == {"statusFilter": ["expired"]}


@pytest.mark.parametrize("threshold", ["abc", "", "  ", "7 jours", "nan"])
def test_non_numeric_threshold_rejected(threshold):
    form = AlertRuleForm(name="R", target="tokens", threshold=threshold, message_template="m")
    with pytest.raises(AlertRuleValidationError) as exc:
        form_to_input(form)
    assert str(exc.value) == THRESHOLD_ERROR


def test_non_numeric_threshold_rejected_for_raw_payload():
    with pytest.raises(AlertRuleValidationError) as exc:
        coerce_alert_rule_input({"name": "R", "messageTemplate": "m", "threshold": "abc"})
    assert str(exc.value) == THRESHOLD_ERROR


def test_name_and_message_required():
    with pytest.raises(AlertRuleValidationError, match=NAME_REQUIRED_ERROR):
        form_to_input(AlertRuleForm(name="  ", threshold="1", message_template="m"))
    with pytest.raises(AlertRuleValidationError, match=MESSAGE_REQUIRED_ERROR):
        form_to_input(AlertRuleForm(name="R", threshold="1", message_template=" "))
    with pytest.raises(AlertRuleValidationError, match=MESSAGE_REQUIRED_ERROR):
        coerce_alert_rule_input({"name": "R", "messageTemplate": "  ", "threshold": 1})


@pytest.mark.parametrize(
    "overrides",
    [
        {},
        {"target": "tokens", "comparator": "<", "threshold": 5000, "severity": "error", "is_blocking": True},
        {"trigger_type": "assistant_access", "threshold": 2.5, "applies_to_role": "premium", "is_active": False},
        {"target": "general", "comparator": "=", "threshold": 0, "metadata": {"statusFilter": ["active", "expired"]}},
    ],
)
def test_form_round_trip_preserves_rule(overrides):
    rule = map_alert_rule_row(_row(**overrides))
    again = map_alert_rule_row({"id": rule.id, **to_db_alert_rule(form_to_input(rule_to_form(rule)))})
    for name in ROUND_TRIP_FIELDS:
        assert getattr(again, name) == getattr(rule, name), name
    assert again.status_filter == rule.status_filter


def test_rule_to_input_changes_only_is_active():
    rule = map_alert_rule_row(_row(is_blocking=True))
    payload = rule_to_input(rule, is_active=False)
    before = to_db_alert_rule(rule_to_input(rule))
    after = to_db_alert_rule(payload)
    assert after.pop("is_active") is False
    before.pop("is_active")
    assert after == before


def test_row_mapping_defaults():
    rule = map_alert_rule_row(_row(metadata=None, applies_to_role=None, threshold="12"))
    assert rule.metadata.status_filter is None
    assert rule.applies_to_role == "any"
    assert rule.threshold == 12
    assert rule.status_filter == []


def test_delete_confirmation_names_rule():
    assert delete_confirmation(map_alert_rule_row(_row())) == "Supprimer l'alerte « Expiring soon » ?"


def _rules():
    return [
        map_alert_rule_row(_row(id="1", name="Zeta", severity="info", message_template="Bienvenue")),
        map_alert_rule_row(_row(id="2", name="alpha", description="Quota JETONS", severity="warning")),
        map_alert_rule_row(_row(id="3", name="Beta", severity="error", message_template="Compte expiré")),
    ]


def test_search_is_case_insensitive_over_all_fields():
    rules = _rules()
    assert [r.id for r in search_alert_rules(rules, "jetons")] == ["2"]
    assert [r.id for r in search_alert_rules(rules, "CRITIQUE")] == ["3"]
    assert [r.id for r in search_alert_rules(rules, "bienvenue")] == ["1"]
    assert [r.id for r in search_alert_rules(rules, "")] == ["2", "3", "1"]


@pytest.mark.parametrize("term", ["a", "E", "expires", "avertissement", "zzz", " Beta "])
def test_search_returns_subset_whose_items_match(term):
    rules = _rules()
    found = search_alert_rules(rules, term)
    assert len(found) <= len(rules)
    needle = term.strip().casefold()
    for rule in found:
        assert rule in rules
        fields = [rule.name, rule.description, rule.message_template, {"info": "Information", "warning": "Avertissement", "error": "Critique"}[rule.severity]]
        assert any(needle in (f or "").casefold() for f in fields)
