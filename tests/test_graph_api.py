from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
import requests

from sharepoint_uploader.errors import (
    AuthorizationError,
    ConfigurationError,
    MaxRetriesExceededError,
    UploadError,
)
from sharepoint_uploader.graph_api import ConflictPolicy, GraphService, RequestSpec, TokenState

GRAPH_URL = "https://graph.microsoft.com/v1.0/"


class _DummyResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, reason: str = "OK", url: str = "") -> None:
        self.status_code = status_code
        self.reason = reason
        self.url = url
        self._payload = payload
        self.content = b"" if payload is None else json.dumps(payload).encode()

    @property
    def ok(self) -> bool:
        return self.status_code < 400

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON object could be decoded")
        return self._payload


class _FakeSession:
    def __init__(self, *outcomes: Any) -> None:
        self.outcomes = list(outcomes)
        self.calls: list[dict[str, Any]] = []

    def request(self, method: str, url: str, **kwargs: Any) -> _DummyResponse:
        self.calls.append({"method": method, "url": url, **kwargs})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class _FakeAuthApp:
    def __init__(self, code_result: dict | None = None, refresh_result: dict | None = None) -> None:
        self.code_result = code_result or {"access_token": "access-1", "refresh_token": "refresh-1"}
        self.refresh_result = refresh_result or {"access_token": "access-2", "refresh_token": "refresh-2"}
        self.code_calls: list[dict[str, Any]] = []
        self.refresh_calls: list[dict[str, Any]] = []

    def get_authorization_request_url(self, scopes, state=None, redirect_uri=None):
        return f"https://login.example/authorize?scope={'+'.join(scopes)}&state={state}"

    def acquire_token_by_authorization_code(self, code, scopes, redirect_uri=None):
        self.code_calls.append({"code": code, "scopes": scopes, "redirect_uri": redirect_uri})
        return self.code_result

    def acquire_token_by_refresh_token(self, refresh_token, scopes):
        self.refresh_calls.append({"refresh_token": refresh_token, "scopes": scopes})
        return self.refresh_result


def _service(session: _FakeSession, token: str | None = "token-0", **kwargs: Any) -> GraphService:
    return GraphService(client_id="client", client_secret="secret", token=token, session=session, **kwargs)


def _signed_in_service(session: _FakeSession, auth_app: _FakeAuthApp) -> GraphService:
    service = _service(session, token=None, auth_app=auth_app, prompt=lambda message: " the-code \n")
    service.authenticate_interactive()
    return service


def test_constructor_requires_client_credentials() -> None:
    with pytest.raises(ConfigurationError):
        GraphService(client_id="", client_secret="secret")
    with pytest.raises(ConfigurationError):
        GraphService(client_id="client", client_secret=None)


def test_request_sends_bearer_token_to_graph_url() -> None:
    session = _FakeSession(_DummyResponse(payload={"displayName": "Ada"}))
    service = _service(session)

    assert service.request_get("me", headers={"Accept": "application/json"}) == {"displayName": "Ada"}
    assert session.calls == [
        {
            "method": "GET",
            "url": GRAPH_URL + "me",
            "headers": {"Authorization": "Bearer token-0", "Accept": "application/json"},
            "data": None,
        }
    ]


def test_request_sends_dict_body_as_json() -> None:
    session = _FakeSession(_DummyResponse(status_code=201, payload={"id": "folder-1"}))
    service = _service(session)

    body = {"name": "Reports", "folder": {}}
    assert service.request_post("me/drive/root/children", body) == {"id": "folder-1"}
    assert session.calls[0]["json"] == body
    assert "data" not in session.calls[0]


def test_empty_body_returns_none() -> None:
    session = _FakeSession(_DummyResponse(status_code=204, reason="No Content"))
    assert _service(session).request_delete("me/drive/items/1") is None


def test_request_without_token_raises_authorization_error() -> None:
    session = _FakeSession()
    with pytest.raises(AuthorizationError):
        _service(session, token=None).request_get("me")
    assert session.calls == []


def test_request_gives_up_after_three_attempts() -> None:
    error = {"error": {"code": "generalException", "message": "General exception while processing"}}
    session = _FakeSession(*[_DummyResponse(status_code=500, payload=error) for _ in range(3)])

    with pytest.raises(MaxRetriesExceededError) as excinfo:
        _service(session).request_put("me/drive/root:/a.txt:/content", b"data")

    assert len(session.calls) == 3
    assert excinfo.value.method == "PUT"
    assert excinfo.value.path == "me/drive/root:/a.txt:/content"


def test_network_errors_are_retried() -> None:
    session = _FakeSession(
        requests.exceptions.ConnectionError("connection reset"),
        requests.exceptions.Timeout("timed out"),
        _DummyResponse(payload={"id": "1"}),
    )
    assert _service(session).request_get("me") == {"id": "1"}
    assert len(session.calls) == 3


def test_invalid_body_is_retried() -> None:
    bad = _DummyResponse(status_code=502, reason="Bad Gateway")
    bad.content = b"<html>bad gateway</html>"
    session = _FakeSession(bad, _DummyResponse(payload={"id": "1"}))

    assert _service(session).request_get("me") == {"id": "1"}
    assert len(session.calls) == 2


def test_ignorable_io_error_returns_none_without_retry() -> None:
    payload = {"error": {"code": "generalException", "message": "IO error during request payload read"}}
    session = _FakeSession(_DummyResponse(status_code=500, payload=payload))

    assert _service(session).request_put("me/drive/root:/a.txt:/content", b"data") is None
    assert len(session.calls) == 1


def test_single_unauthorized_response_refreshes_once() -> None:
    auth_app = _FakeAuthApp()
    session = _FakeSession(
        _DummyResponse(status_code=401, reason="Unauthorized"),
        _DummyResponse(payload={"id": "me"}),
    )
    service = _signed_in_service(session, auth_app)

    assert service.request_get("me") == {"id": "me"}
    assert auth_app.refresh_calls == [{"refresh_token": "refresh-1", "scopes": ["User.Read", "Files.ReadWrite.All"]}]
    assert [call["headers"]["Authorization"] for call in session.calls] == ["Bearer access-1", "Bearer access-2"]


def test_second_unauthorized_response_is_terminal() -> None:
    auth_app = _FakeAuthApp()
    session = _FakeSession(
        _DummyResponse(status_code=401, reason="Unauthorized"),
        _DummyResponse(status_code=401, reason="Unauthorized"),
    )
    service = _signed_in_service(session, auth_app)

    with pytest.raises(AuthorizationError):
        service.request_get("me")
    assert len(auth_app.refresh_calls) == 1
    assert len(session.calls) == 2


def test_unauthorized_without_refresh_token_is_terminal() -> None:
    session = _FakeSession(_DummyResponse(status_code=401, reason="Unauthorized"))

    with pytest.raises(AuthorizationError):
        _service(session).request_get("me")
    assert len(session.calls) == 1


def test_failed_refresh_raises_authorization_error() -> None:
    auth_app = _FakeAuthApp(refresh_result={"error": "invalid_grant", "error_description": "expired"})
    session = _FakeSession(
        _DummyResponse(status_code=401, reason="Unauthorized"),
        _DummyResponse(payload={"id": "me"}),
    )
    service = _signed_in_service(session, auth_app)

    with pytest.raises(AuthorizationError):
        service.request_get("me")

    assert service.is_authenticated
    assert service.request_get("me") == {"id": "me"}
    assert session.calls[-1]["headers"]["Authorization"] == "Bearer access-1"


def test_refresh_without_refresh_token_fails() -> None:
    with pytest.raises(AuthorizationError):
        _service(_FakeSession()).refresh()


def test_authenticate_with_supplied_token_probes_identity() -> None:
    prompts: list[str] = []
    session = _FakeSession(_DummyResponse(payload={"id": "me"}))
    service = _service(session, prompt=prompts.append)

    service.authenticate_interactive()

    assert prompts == []
    assert session.calls[0]["url"] == GRAPH_URL + "me"


def test_authenticate_interactive_exchanges_code() -> None:
    prompts: list[str] = []
    auth_app = _FakeAuthApp()

    def prompt(message: str) -> str:
        prompts.append(message)
        return "the-code\n"

    service = _service(_FakeSession(), token=None, auth_app=auth_app, prompt=prompt)
    service.authenticate_interactive()

    assert "https://login.example/authorize" in prompts[0]
    assert auth_app.code_calls == [
        {
            "code": "the-code",
            "scopes": ["User.Read", "Files.ReadWrite.All"],
            "redirect_uri": "https://login.live.com/oauth20_desktop.srf",
        }
    ]
    assert service.is_authenticated


def test_authenticate_interactive_fails_on_error_payload() -> None:
    auth_app = _FakeAuthApp(code_result={"error": "invalid_grant", "error_description": "bad code"})
    service = _service(_FakeSession(), token=None, auth_app=auth_app, prompt=lambda message: "bad")

    with pytest.raises(AuthorizationError):
        service.authenticate_interactive()
    assert not service.is_authenticated


def test_logout_clears_tokens() -> None:
    session = _FakeSession()
    service = _signed_in_service(session, _FakeAuthApp())

    service.logout()

    assert not service.is_authenticated
    with pytest.raises(AuthorizationError):
        service.request_get("me")
    with pytest.raises(AuthorizationError):
        service.refresh()


def test_token_state_repr_hides_tokens() -> None:
    state = TokenState(access_token="secret-access", refresh_token="secret-refresh")
    assert "secret" not in repr(state)


def test_request_spec_rejects_unknown_method() -> None:
    with pytest.raises(ValueError):
        RequestSpec("me", "PATCH")


def test_upload_file_returns_none_when_missing(tmp_path: Path) -> None:
    session = _FakeSession()
    assert _service(session).upload_file(str(tmp_path), "Reports", "missing.pdf") is None
    assert session.calls == []


def test_upload_file_puts_content_to_normalized_path(tmp_path: Path) -> None:
    (tmp_path / "2024").mkdir()
    (tmp_path / "2024" / "report (final)?.pdf").write_bytes(b"%PDF")
    item = {"id": "item-1", "name": "report (final).pdf", "size": 4}
    session = _FakeSession(_DummyResponse(status_code=201, payload=item))

    conflict = ConflictPolicy(type="etag")
    result = _service(session).upload_file(str(tmp_path), "My Docs", "2024/report (final)?.pdf", conflict)

    assert result == item
    call = session.calls[0]
    assert call["method"] == "PUT"
    assert call["url"] == GRAPH_URL + "me/drive/root:/My Docs/report%20%28final%29.pdf:/content"
    assert call["data"] == b"%PDF"


def test_upload_file_uses_custom_base_folder() -> None:
    service = _service(_FakeSession(), sharepoint_folder="sites/abc/drive/root")
    assert service.build_upload_path("Inbox", "a&b.txt") == "sites/abc/drive/root:/Inbox/aandb.txt:/content"


def test_upload_file_wraps_failures_with_remote_path(tmp_path: Path) -> None:
    (tmp_path / "a.txt").write_bytes(b"data")
    session = _FakeSession(*[requests.exceptions.ConnectionError("down") for _ in range(3)])

    with pytest.raises(UploadError) as excinfo:
        _service(session).upload_file(str(tmp_path), "Reports", "a.txt")

    assert excinfo.value.remote_path == "me/drive/root:/Reports/a.txt:/content"
    assert isinstance(excinfo.value.cause, MaxRetriesExceededError)
    assert isinstance(excinfo.value.__cause__, MaxRetriesExceededError)


def test_get_sharepoint_url() -> None:
    service = _service(_FakeSession(), domain="contoso")
    assert service.get_sharepoint_url("Reports/a.txt") == "https://contoso.sharepoint.com/Shared Documents/Reports/a.txt"
    assert service.sharepoint_folder == "me/drive/root"


def test_access_token_is_printed_only_when_enabled(capsys: pytest.CaptureFixture[str]) -> None:
    _signed_in_service(_FakeSession(), _FakeAuthApp())
    assert "access-1" not in capsys.readouterr().out

    service = _service(_FakeSession(), token=None, auth_app=_FakeAuthApp(), prompt=lambda message: "code", log_token=True)
    service.authenticate_interactive()
    assert "access-1" in capsys.readouterr().out


def test_unreachable_sign_in_authority_raises_authorization_error(monkeypatch: pytest.MonkeyPatch) -> None:
    def failing_app(**kwargs: Any) -> None:
        raise requests.exceptions.ConnectionError("authority discovery failed")

    monkeypatch.setattr("sharepoint_uploader.auth.msal.ConfidentialClientApplication", failing_app)
    prompts: list[str] = []
    service = _service(_FakeSession(), token=None, prompt=prompts.append)

    with pytest.raises(AuthorizationError) as excinfo:
        service.authenticate_interactive()

    assert isinstance(excinfo.value.__cause__, requests.exceptions.ConnectionError)
    assert prompts == []
    assert not service.is_authenticated


def test_retry_debug_output_includes_error_payload(capsys: pytest.CaptureFixture[str]) -> None:
    error = {"error": {"code": "itemNotFound", "message": "The resource could not be found."}}
    session = _FakeSession(_DummyResponse(status_code=404, payload=error), _DummyResponse(payload={"id": "1"}))

    assert _service(session, debug=True).request_get("me/drive/items/1") == {"id": "1"}
    assert "itemNotFound" in capsys.readouterr().out.split("Retrying 1 time(s)")[1]
