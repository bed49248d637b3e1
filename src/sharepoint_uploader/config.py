# -*- coding: utf-8 -*-
"""
Configuration management for SharePoint uploads.

This module holds the fixed Microsoft Graph settings and parses the
command-line arguments and environment variables (optionally from a .env file).
"""

import os
import sys
from dotenv import load_dotenv
from .errors import ConfigurationError
from .utils import is_debug_enabled, is_token_logging_enabled

# Azure AD / Graph endpoints (override for GovCloud, China cloud, ...)
DEFAULT_LOGIN_ENDPOINT = "login.microsoftonline.com"
DEFAULT_GRAPH_ENDPOINT = "graph.microsoft.com"

# Where uploads land and how their browser URL is built
DEFAULT_SHAREPOINT_FOLDER = "me/drive/root"
DEFAULT_SHAREPOINT_FOLDER_URL = "Shared Documents/"
SHAREPOINT_DOMAIN_URL = "https://{domain}.sharepoint.com/"

# OAuth 2.0 authorization code flow for a desktop (native) redirect.
# msal adds the reserved openid / offline_access / profile scopes on its own.
REDIRECT_URI = "https://login.live.com/oauth20_desktop.srf"
SCOPES = ("User.Read", "Files.ReadWrite.All")
AUTHORIZE_STATE = "12345"

# Total attempts per request, including the first one
MAX_RETRIES = 3


class Config:
    """Configuration for SharePoint upload operations"""

    def __init__(self, argv=None, environ=None):
        """
        Parse command-line arguments and environment variables.

        Arguments are parsed from argv (default: sys.argv) in the following order:
        1. attachment_dir - Local directory holding the files
        2. folder_name - Remote folder (created by SharePoint when missing)
        3. files... - One or more file names relative to attachment_dir

        Environment variables:
            MS_GRAPH_DOMAIN - SharePoint tenant name (<domain>.sharepoint.com)
            MS_GRAPH_CLIENT_ID - App registration client ID (required)
            MS_GRAPH_CLIENT_SECRET - App registration client secret (required)
            MS_GRAPH_TOKEN (optional) - Pre-supplied access token, skips interactive sign-in
            MS_GRAPH_SHAREPOINT_FOLDER (optional) - Base remote folder (default: me/drive/root)
            MS_GRAPH_SHAREPOINT_FOLDER_URL (optional) - Display folder prefix (default: Shared Documents/)
            MS_GRAPH_DEBUG (optional) - Print debug events (default: false)
            MS_GRAPH_LOG_TOKEN (optional) - Print access tokens (default: false)
            MS_GRAPH_LOGIN_ENDPOINT (optional) - Azure AD endpoint (default: login.microsoftonline.com)
            MS_GRAPH_ENDPOINT (optional) - Graph API endpoint (default: graph.microsoft.com)
        """
        argv = sys.argv if argv is None else argv
        environ = os.environ if environ is None else environ

        # Positional arguments
        self.attachment_dir = argv[1] if len(argv) > 1 else ""
        self.folder_name = argv[2] if len(argv) > 2 else ""
        self.files = [f for f in argv[3:] if f]

        # Credentials
        self.domain = environ.get('MS_GRAPH_DOMAIN', '')
        self.client_id = environ.get('MS_GRAPH_CLIENT_ID', '')
        self.client_secret = environ.get('MS_GRAPH_CLIENT_SECRET', '')
        self.token = environ.get('MS_GRAPH_TOKEN') or None

        # Optional settings with defaults
        self.sharepoint_folder = environ.get('MS_GRAPH_SHAREPOINT_FOLDER') or DEFAULT_SHAREPOINT_FOLDER
        self.sharepoint_folder_url = environ.get('MS_GRAPH_SHAREPOINT_FOLDER_URL') or DEFAULT_SHAREPOINT_FOLDER_URL
        self.debug = is_debug_enabled(environ)
        self.log_token = is_token_logging_enabled(environ)
        self.login_endpoint = environ.get('MS_GRAPH_LOGIN_ENDPOINT') or DEFAULT_LOGIN_ENDPOINT
        self.graph_endpoint = environ.get('MS_GRAPH_ENDPOINT') or DEFAULT_GRAPH_ENDPOINT

    def validate(self):
        """
        Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.client_id:
            raise ConfigurationError("The Microsoft APP ClientID is required!")
        if not self.client_secret:
            raise ConfigurationError("The Microsoft APP ClientSecret is required!")
        if not self.attachment_dir:
            raise ConfigurationError("attachment_dir cannot be empty")
        if not self.folder_name:
            raise ConfigurationError("folder_name cannot be empty")
        if not self.files:
            raise ConfigurationError("at least one file is required")


def parse_config(argv=None, environ=None):
    """
    Parse configuration from command-line arguments and the environment.

    A .env file in the working directory is loaded first when the real
    process environment is used.

    Returns:
        Config: Configured Config object

    Raises:
        ConfigurationError: If configuration is invalid
    """
    if environ is None:
        load_dotenv()
    config = Config(argv, environ)
    config.validate()
    return config
