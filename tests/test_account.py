import dataclasses
import smtplib
from types import SimpleNamespace

from conftest import auth_headers
from studybuddy import app_context


def test_update_profile_and_email_conflict(client, make_user):
    token, _ = make_user()
    make_user(email="taken@example.com")
    headers = auth_headers(token)

    conflict = client.put("/api/users/update", json={
        "firstName": "Ada",
        "lastName": "King",
        "email": "Taken@Example.com",
    }, headers=headers)
    assert conflict.status_code == 409
    assert conflict.get_json()["error"] == "Email is already in use."

    response = client.put("/api/users/update", json={
        "firstName": "Ada",
        "lastName": "King",
        "email": "student@example.com",
        "company": "Analytical Engines",
    }, headers=headers)
    assert response.status_code == 200
    user = response.get_json()["user"]
    assert user["lastName"] == "King"
    assert user["company"] == "Analytical Engines"
    assert "password" not in user


def test_update_profile_requires_fields(client, make_user):
    token, _ = make_user()
    response = client.put("/api/users/update", json={"firstName": "Ada"}, headers=auth_headers(token))
    assert response.status_code == 400


def test_change_password(client, make_user):
    token, _ = make_user(password="old-pass")
    headers = auth_headers(token)

    wrong = client.put("/api/users/change-password", json={
        "currentPassword": "not-it",
        "newPassword": "new-pass",
    }, headers=headers)
    assert wrong.status_code == 401
    assert wrong.get_json()["error"] == "Current password is incorrect."

    ok = client.put("/api/users/change-password", json={
        "currentPassword": "old-pass",
        "newPassword": "new-pass",
    }, headers=headers)
    assert ok.status_code == 200

    old_login = client.post("/api/auth/login", json={"email": "student@example.com", "password": "old-pass"})
    assert old_login.status_code == 401
    new_login = client.post("/api/auth/login", json={"email": "student@example.com", "password": "new-pass"})
    assert new_login.status_code == 200


def test_change_password_rejects_overlong_new_password(client, make_user):
    token, _ = make_user(password="old-pass")

    response = client.put("/api/users/change-password", json={
        "currentPassword": "old-pass",
        "newPassword": "n" * 73,
    }, headers=auth_headers(token))

    assert response.status_code == 400
    assert response.get_json() == {"error": "Password must be at most 72 bytes."}
    still_old = client.post("/api/auth/login", json={"email": "student@example.com", "password": "old-pass"})
    assert still_old.status_code == 200


def test_update_preferences(client, make_user):
    token, _ = make_user()
    headers = auth_headers(token)

    invalid = client.put("/api/users/preferences", json={"preferences": ["dark"]}, headers=headers)
    assert invalid.status_code == 400

    response = client.put("/api/users/preferences", json={"preferences": {"theme": "dark"}}, headers=headers)
    assert response.status_code == 200
    assert response.get_json()["user"]["preferences"] == {"theme": "dark"}


class FakeSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.logins = []
        self.sent = []
        FakeSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def login(self, user, password):
        self.logins.append((user, password))

    def send_message(self, message):
        self.sent.append(message)


def _mail_config(test_config):
    return dataclasses.replace(
        test_config,
        gmail_address="studybuddy@example.com",
        gmail_app_pass="app-pass",
        admin_email="admin@example.com",
    )


def test_feature_request_sends_mail(client, make_user, monkeypatch, test_config):
    token, _ = make_user()
    FakeSMTP.instances = []
    monkeypatch.setattr(app_context, "config", _mail_config(test_config))
    monkeypatch.setattr(app_context, "smtplib", SimpleNamespace(SMTP_SSL=FakeSMTP, SMTPException=smtplib.SMTPException))

    response = client.post("/api/feature-request", json={
        "title": "Dark mode",
        "description": "Please add <b>dark</b> mode.",
    }, headers=auth_headers(token))

    assert response.status_code == 200
    assert response.get_json() == {"success": True, "message": "Feature request sent successfully!"}
    smtp = FakeSMTP.instances[0]
    assert (smtp.host, smtp.port) == ("smtp.gmail.com", 465)
    assert smtp.logins == [("studybuddy@example.com", "app-pass")]
    message = smtp.sent[0]
    assert message["To"] == "admin@example.com"
    assert message["Subject"] == "StudyBuddy Feature Request: Dark mode"
    assert "&lt;b&gt;dark&lt;/b&gt;" in message.get_body(("html",)).get_content()


def test_feature_request_validation_and_failures(client, make_user, monkeypatch, test_config):
    token, _ = make_user()
    headers = auth_headers(token)

    missing = client.post("/api/feature-request", json={"title": "Only a title"}, headers=headers)
    assert missing.status_code == 400
    assert missing.get_json()["success"] is False

    unconfigured = client.post("/api/feature-request", json={"title": "t", "description": "d"}, headers=headers)
    assert unconfigured.status_code == 500

    def failing_smtp(*_args, **_kwargs):
        raise smtplib.SMTPException("connection refused")

    monkeypatch.setattr(app_context, "config", _mail_config(test_config))
    monkeypatch.setattr(app_context, "smtplib", SimpleNamespace(SMTP_SSL=failing_smtp, SMTPException=smtplib.SMTPException))
    failed = client.post("/api/feature-request", json={"title": "t", "description": "d"}, headers=headers)
    assert failed.status_code == 500
    assert failed.get_json()["message"] == "Failed to send feature request."


def test_feature_request_title_line_breaks_are_collapsed(client, make_user, monkeypatch, test_config):
    token, _ = make_user()
    FakeSMTP.instances = []
    monkeypatch.setattr(app_context, "config", _mail_config(test_config))
    monkeypatch.setattr(app_context, "smtplib", SimpleNamespace(SMTP_SSL=FakeSMTP, SMTPException=smtplib.SMTPException))

    response = client.post("/api/feature-request", json={
        "title": "Dark\r\nmode\nBcc: someone@example.com",
        "description": "Please.",
    }, headers=auth_headers(token))

    assert response.status_code == 200
    message = FakeSMTP.instances[0].sent[0]
    assert message["Subject"] == "StudyBuddy Feature Request: Dark mode Bcc: someone@example.com"
    assert message["Bcc"] is None


def test_feature_request_whitespace_only_title_is_missing(client, make_user):
    token, _ = make_user()

    response = client.post("/api/feature-request", json={"title": "\r\n\t", "description": "d"}, headers=auth_headers(token))

    assert response.status_code == 400
    assert response.get_json()["success"] is False
