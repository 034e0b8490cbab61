import pytest

from promoter_slots import email_service
from promoter_slots.email_templates import approval_template, slot_confirmation_template
from promoter_slots.errors import NotificationError


def test_confirmation_template_includes_meet_link():
    mjml = slot_confirmation_template("Ana", "Monday, June 03, 2024", "09:00", "10:00", "https://meet.google.com/x")

    assert "Hi Ana" in mjml
    assert "09:00 - 10:00" in mjml
    assert 'href="https://meet.google.com/x"' in mjml


def test_confirmation_template_without_link_has_no_button():
    mjml = slot_confirmation_template("Ana", "Monday, June 03, 2024", "09:00", "10:00")

    assert "<mj-button" not in mjml
    assert "will be shared with you" in mjml


def test_approval_template_is_spanish():
    assert "Hola Ana" in approval_template("Ana")


async def test_send_email_requires_api_key(monkeypatch):
    monkeypatch.setattr(email_service, "RESEND_API_KEY", None)

    with pytest.raises(NotificationError):
        await email_service.send_email("ana@example.com", "Asunto", "<mjml></mjml>")


async def test_send_email_through_resend(monkeypatch):
    sent = []
    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda content: "<html></html>")
    monkeypatch.setattr(email_service.resend.Emails, "send", lambda params: sent.append(params) or {"id": "1"})

    response = await email_service.send_email("ana@example.com", "Asunto", "<mjml></mjml>")

    assert response == {"id": "1"}
    assert sent[0]["to"] == ["ana@example.com"]
    assert sent[0]["html"] == "<html></html>"


async def test_send_failure_is_wrapped(monkeypatch):
    def boom(params):
        raise RuntimeError("rate limited")

    monkeypatch.setattr(email_service, "RESEND_API_KEY", "re_test")
    monkeypatch.setattr(email_service, "compile_mjml_to_html", lambda content: "<html></html>")
    monkeypatch.setattr(email_service.resend.Emails, "send", boom)

    with pytest.raises(NotificationError, match="rate limited"):
        await email_service.send_email("ana@example.com", "Asunto", "<mjml></mjml>")
