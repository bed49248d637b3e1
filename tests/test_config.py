from __future__ import annotations

import pytest

from sharepoint_uploader.config import Config, parse_config
from sharepoint_uploader.errors import ConfigurationError

ENV = {
    "MS_GRAPH_DOMAIN": "contoso",
    "MS_GRAPH_CLIENT_ID": "client",
    "MS_GRAPH_CLIENT_SECRET": "secret",
}


def test_defaults_are_applied() -> None:
    config = parse_config(["main.py", "~/attachments", "Reports", "a.pdf", "b.pdf"], ENV)

    assert config.attachment_dir == "~/attachments"
    assert config.folder_name == "Reports"
    assert config.files == ["a.pdf", "b.pdf"]
    assert config.token is None
    assert config.sharepoint_folder == "me/drive/root"
    assert config.sharepoint_folder_url == "Shared Documents/"
    assert config.login_endpoint == "login.microsoftonline.com"
    assert config.graph_endpoint == "graph.microsoft.com"
    assert config.debug is False
    assert config.log_token is False


def test_optional_settings_are_read_from_environment() -> None:
    environ = {
        **ENV,
        "MS_GRAPH_TOKEN": "token",
        "MS_GRAPH_SHAREPOINT_FOLDER": "sites/abc/drive/root",
        "MS_GRAPH_DEBUG": "TRUE",
        "MS_GRAPH_LOG_TOKEN": "true",
        "MS_GRAPH_ENDPOINT": "graph.microsoft.us",
    }
    config = Config(["main.py", "dir", "Reports", "a.pdf"], environ)

    assert config.token == "token"
    assert config.sharepoint_folder == "sites/abc/drive/root"
    assert config.debug is True
    assert config.log_token is True
    assert config.graph_endpoint == "graph.microsoft.us"


@pytest.mark.parametrize(
    ("argv", "environ"),
    [
        (["main.py", "dir", "Reports", "a.pdf"], {**ENV, "MS_GRAPH_CLIENT_ID": ""}),
        (["main.py", "dir", "Reports", "a.pdf"], {"MS_GRAPH_CLIENT_ID": "client"}),
        (["main.py", "dir", "Reports"], ENV),
        (["main.py"], ENV),
    ],
)
def test_invalid_configuration_is_rejected(argv: list[str], environ: dict[str, str]) -> None:
    with pytest.raises(ConfigurationError):
        parse_config(argv, environ)
