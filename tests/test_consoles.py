"""Alert-rule and email-template admin consoles over the backend gateways."""
import httpx
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from apps.console.main import app
from apps.console.deps import get_db
from apps.console.database import Base, get_test_engine
from apps.console.auth import create_access_token
from apps.console.clients.backend import BackendClient
from apps.console.clients.records import AlertRulesGateway, EmailTemplatesGateway, SupportGateway
from apps.console.schemas.alert_rule import AlertRuleForm
from apps.console.schemas.email_template import EmailTemplateForm
from apps.console.services.alert_rules import THRESHOLD_ERROR
from apps.console.services.email_templates import REQUIRED_FIELDS_ERROR
from apps.console.services.support import SupportRequestError
from apps.console.workflows.alert_rules import LOAD_ERROR, AlertRulesConsole
from apps.console.workflows.email_templates import EmailTemplatesConsole

client = TestClient(app)


@pytest.fixture
def test_db_session():
    engine = get_test_engine()
    Base.metadata.create_all(engine)
    SessionLocal = sessionmaker(bind=engine)
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def override_get_db(test_db_session):
    def _get_db():
        try:
            yield test_db_session
        finally:
            pass
    return _get_db


@pytest.fixture
def backend(override_get_db):
    app.dependency_overrides[get_db] = override_get_db
    try:
        yield BackendClient(client, access_token=create_access_token({"sub": "admin"}))
    finally:
        app.dependency_overrides.pop(get_db, None)


def _recording_backend(status=500):
    calls = []

    def handler(request):
        calls.append(f"{request.method} {request.url.path}")
        return httpx.Response(status, json={"error": "Erreur serveur"})

    http = httpx.Client(transport=httpx.MockTransport(handler), base_url="http://backend.test")
    return BackendClient(http), calls


def _rule_form(**overrides):
    data = {
        "name": "Expiring soon",
        "target": "subscription",
        "comparator": "<=",
        "threshold": "7",
        "severity": "warning",
        "message_template": "Your plan expires in {{days}} days",
        "applies_to_role": "any",
    }
    data.update(overrides)
    return AlertRuleForm(**data)


def _template_form(**overrides):
    data = {"name": "Bienvenue", "subject": "Bienvenue", "body": "Bonjour", "cc": "a@x.com, b@x.com ,, c@x.com"}
    data.update(overrides)
    return EmailTemplateForm(**data)


def test_invalid_threshold_never_reaches_backend():
    http, calls = _recording_backend()
    console = AlertRulesConsole(AlertRulesGateway(http))
    assert console.submit(_rule_form(threshold="abc")) is None
    assert console.submit(_rule_form(threshold="abc"), editing_id="r-1") is None
    assert console.last_error == THRESHOLD_ERROR
    assert calls == []


def test_invalid_template_never_reaches_backend():
    http, calls = _recording_backend()
    console = EmailTemplatesConsole(EmailTemplatesGateway(http))
    assert console.submit(_template_form(subject=" ")) is None
    assert console.last_error == REQUIRED_FIELDS_ERROR
    assert calls == []


def test_backend_failure_reported_once_without_retry():
    http, calls = _recording_backend()
    console = AlertRulesConsole(AlertRulesGateway(http))
    assert console.load() is False
    assert console.last_error == LOAD_ERROR
    assert console.submit(_rule_form()) is None
    assert console.last_error == "Erreur serveur"
    assert calls == ["GET /rest/v1/alert_rules", "POST /rest/v1/alert_rules"]


@pytest.mark.timeout(10)
def test_alert_rule_console_lifecycle(backend):
    console = AlertRulesConsole(AlertRulesGateway(backend))
    assert console.load() is True
    assert console.rules == []

    created = console.submit(_rule_form())
    assert created.threshold == 7
    assert created.is_active is True
    assert created.is_blocking is False
    assert console.rules == [created]

    general = console.submit(
        _rule_form(name="Compte en attente", target="general", comparator=">", threshold="15", status_filter=["inactive"])
    )
    assert (general.comparator, general.threshold) == ("=", 0)
    assert general.status_filter == ["inactive"]
    assert [r.id for r in console.rules] == [general.id, created.id]

    toggled = console.toggle_active(created, False)
    assert toggled.is_active is False
    assert toggled.comparator == "<="
    assert toggled.threshold == 7
    assert toggled.message_template == created.message_template

    edited = console.submit(_rule_form(name="Expire bientôt", threshold="3"), editing_id=created.id)
    assert edited.name == "Expire bientôt"
    assert {r.id: r.name for r in console.rules}[created.id] == "Expire bientôt"

    asked = []
    assert console.delete(general, lambda text: asked.append(text) or False) is False
    assert asked == ["Supprimer l'alerte « Compte en attente » ?"]
    assert len(console.rules) == 2
    assert console.delete(general, lambda text: True) is True
    assert [r.id for r in console.rules] == [created.id]

    assert console.refresh() is True
    assert [r.name for r in console.rules] == ["Expire bientôt"]


@pytest.mark.timeout(10)
def test_alert_rule_console_update_of_deleted_rule(backend):
    console = AlertRulesConsole(AlertRulesGateway(backend))
    rule = console.submit(_rule_form())
    backend.delete("alert_rules", rule.id)
    assert console.toggle_active(rule, False) is None
    assert console.last_error == "Règle introuvable lors de la mise à jour"


@pytest.mark.timeout(10)
def test_alert_rule_console_search_and_pages(backend):
    console = AlertRulesConsole(AlertRulesGateway(backend), page_size=10)
    for i in range(12):
        console.submit(_rule_form(name=f"Règle {i:02d}", severity="error" if i < 3 else "info"))
    console.set_page(2)
    assert [r.name for r in console.visible_page().items] == ["Règle 10", "Règle 11"]
    console.set_search("CRITIQUE")
    page = console.visible_page()
    assert page.page == 1
    assert [r.name for r in page.items] == ["Règle 00", "Règle 01", "Règle 02"]
    console.set_page_size(20)
    console.set_search("")
    assert console.visible_page().total_pages == 1


@pytest.mark.timeout(10)
def test_email_template_console_lifecycle(backend):
    console = EmailTemplatesConsole(EmailTemplatesGateway(backend))
    assert console.load() is True
    form = console.new_form()
    form.name, form.subject, form.body = "Relance", "Votre abonnement", "Bonjour {{user_name}}"
    form.cc = "a@x.com, b@x.com ,, c@x.com"
    created = console.submit(form)
    assert created.cc == ["a@x.com", "b@x.com", "c@x.com"]
    assert created.signature == form.signature

    blank_signature = console.submit(_template_form(name="Facture", signature=""))
    assert blank_signature.signature == form.signature

    toggled = console.toggle_active(created, False)
    assert toggled.is_active is False
    assert toggled.cc == created.cc

    console.set_search("c@x.com")
    assert {t.name for t in console.visible_page().items} == {"Relance", "Facture"}

    assert console.delete(created, lambda text: text == "Supprimer le template « Relance » ?") is True
    assert [t.name for t in console.templates] == ["Facture"]


def test_support_gateway_validates_locally():
    http, calls = _recording_backend()
    gateway = SupportGateway(http)
    with pytest.raises(SupportRequestError):
        gateway.send("client@example.dz", "Sujet", "Message assez long", cc=["pas-valide"])
    assert calls == []


@pytest.mark.timeout(10)
def test_support_gateway_sends(backend):
    assert SupportGateway(backend).send("client@example.dz", "Sujet", "Message assez long", bcc=["x@y.dz"]) is True
