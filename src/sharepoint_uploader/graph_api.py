# -*- coding: utf-8 -*-
"""
Microsoft Graph API operations for SharePoint uploads.

This module provides the Graph service: user sign-in, token refresh,
authenticated requests with retry, and file uploads to SharePoint folders.

Example:
    service = GraphService(domain='contoso', client_id=..., client_secret=...)
    service.authenticate_interactive()
    # Reads '~/attachments/myfile.pdf' into 'me/drive/root:/My Docs/myfile.pdf'
    service.upload_file('~/attachments', 'My Docs', 'myfile.pdf')
    profile = service.request_get('me')
    service.logout()
"""

import os
import re
from dataclasses import dataclass, field
import requests
from .auth import (
    GRANT_AUTHORIZATION_CODE,
    GRANT_REFRESH_TOKEN,
    create_auth_app,
    get_authorization_url,
    request_authorization_token,
)
from .config import (
    DEFAULT_GRAPH_ENDPOINT,
    DEFAULT_LOGIN_ENDPOINT,
    DEFAULT_SHAREPOINT_FOLDER,
    DEFAULT_SHAREPOINT_FOLDER_URL,
    MAX_RETRIES,
    SHAREPOINT_DOMAIN_URL,
)
from .errors import (
    AuthorizationError,
    ConfigurationError,
    GraphServiceError,
    MaxRetriesExceededError,
    TransientRequestError,
    UploadError,
)
from .file_handler import encode, file_exists, read_file_bytes
from .utils import is_debug_enabled, print_debug_block

HTTP_METHODS = ('GET', 'POST', 'PUT', 'DELETE')

# Graph sometimes fails reading an upload body it already stored; the
# caller gets an empty result instead of an error for this message
IGNORABLE_ERROR_PATTERN = re.compile(r'IO error during request payload read')


@dataclass
class TokenState:
    """Tokens of one signed-in session. Token values never show up in repr()."""

    access_token: str = field(default=None, repr=False)
    refresh_token: str = field(default=None, repr=False)
    authorization_code: str = field(default=None, repr=False)

    def clear(self):
        self.access_token = None
        self.refresh_token = None
        self.authorization_code = None


@dataclass(frozen=True)
class ConflictPolicy:
    """
    How a name conflict should be resolved on the remote side.

    type is 'error' or 'etag'; item_name_resolver is a fixed text or 'random'.
    """

    type: str = 'error'
    item_name_resolver: str = None


@dataclass(frozen=True)
class RequestSpec:
    """One Graph request: path relative to the API root, verb, body, headers."""

    path: str
    method: str = 'GET'
    body: object = None
    headers: dict = None
    conflict: ConflictPolicy = None

    def __post_init__(self):
        if self.method not in HTTP_METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")


def _error_message(error):
    if isinstance(error, dict):
        return str(error.get('message', ''))
    return str(error)


class GraphService:
    """
    Bearer-token client for the Microsoft Graph API.

    Owns the credentials and the TokenState of one session. Requests are
    retried up to MAX_RETRIES attempts, refreshing the token once per attempt
    when Graph answers 401.
    """

    def __init__(self, client_id, client_secret, domain=None, token=None,
                 sharepoint_folder=None, sharepoint_folder_url=None,
                 debug=False, log_token=False,
                 login_endpoint=DEFAULT_LOGIN_ENDPOINT, graph_endpoint=DEFAULT_GRAPH_ENDPOINT,
                 session=None, auth_app=None, prompt=None):
        """
        Args:
            client_id (str): Application (client) ID from Azure AD app registration
            client_secret (str): Client secret value from Azure AD app registration
            domain (str): SharePoint tenant name used by get_sharepoint_url()
            token (str): Pre-supplied access token (skips the interactive sign-in)
            sharepoint_folder (str): Base remote folder (default: 'me/drive/root')
            sharepoint_folder_url (str): Folder URL prefix (default: 'Shared Documents/')
            debug (bool): Print debug events (also enabled by MS_GRAPH_DEBUG=true)
            log_token (bool): Print the access token after sign-in
            login_endpoint (str): Azure AD endpoint
            graph_endpoint (str): Graph API endpoint
            session: HTTP transport with a requests-compatible request() method
            auth_app: MSAL application (created on first use when omitted)
            prompt: Callable asking the user for the authorization code (default: input)

        Raises:
            ConfigurationError: If client_id or client_secret is missing
        """
        if not client_id:
            raise ConfigurationError("The Microsoft APP ClientID is required!")
        if not client_secret:
            raise ConfigurationError("The Microsoft APP ClientSecret is required!")

        self._client_id = client_id
        self._client_secret = client_secret
        self._domain = domain
        self._sharepoint_folder = sharepoint_folder or DEFAULT_SHAREPOINT_FOLDER
        self._sharepoint_folder_url = sharepoint_folder_url or DEFAULT_SHAREPOINT_FOLDER_URL
        self._login_endpoint = login_endpoint
        self._graph_url = f"https://{graph_endpoint}/v1.0/"
        self._is_debug = bool(debug) or is_debug_enabled()
        self._should_log_token = bool(log_token)

        self._session = session or requests.Session()
        self._auth_app = auth_app
        self._prompt = prompt or input

        self._tokens = TokenState()
        self.logout()
        self._tokens.access_token = token

    @classmethod
    def from_config(cls, config, **kwargs):
        """Build a service from a Config object."""
        return cls(
            client_id=config.client_id,
            client_secret=config.client_secret,
            domain=config.domain,
            token=config.token,
            sharepoint_folder=config.sharepoint_folder,
            sharepoint_folder_url=config.sharepoint_folder_url,
            debug=config.debug,
            log_token=config.log_token,
            login_endpoint=config.login_endpoint,
            graph_endpoint=config.graph_endpoint,
            **kwargs
        )

    @property
    def sharepoint_folder(self):
        return self._sharepoint_folder

    @property
    def is_authenticated(self):
        return self._tokens.access_token is not None

    # ------------------------------------------------------------------
    # Diagnostics
    # ------------------------------------------------------------------

    def _debug(self, operation, message):
        if self._is_debug:
            print_debug_block(operation, message)

    def _debug_response(self, operation, response):
        self._debug(operation, {
            'url': response.url,
            'status': response.status_code,
            'statusText': response.reason,
        })

    # ------------------------------------------------------------------
    # Authentication
    # ------------------------------------------------------------------

    def _get_auth_app(self):
        if self._auth_app is None:
            self._auth_app = create_auth_app(self._client_id, self._client_secret, self._login_endpoint)
        return self._auth_app

    def get_authorize_url(self):
        """Return the sign-in URL the user has to open in a browser."""
        return get_authorization_url(self._get_auth_app())

    def _set_authorization_tokens(self, authorization):
        self._tokens.access_token = authorization['access_token']
        # Keep the previous refresh token when the response carries none
        self._tokens.refresh_token = authorization.get('refresh_token') or self._tokens.refresh_token
        if self._should_log_token:
            print(f"[KEY] MS Access Token: {self._tokens.access_token}\n")

    def _request_authorization_token(self, token, grant_type=GRANT_AUTHORIZATION_CODE):
        token_key = 'refresh_token' if grant_type == GRANT_REFRESH_TOKEN else 'code'
        try:
            authorization = request_authorization_token(self._get_auth_app(), token, grant_type)
        except (AuthorizationError, ValueError, requests.exceptions.RequestException) as error:
            self._debug('RequestAuthorizationToken', error)
            raise AuthorizationError(f"Cannot get the SharePoint authorization {token_key}") from error

        self._debug('RequestAuthorizationToken', {
            'token_type': authorization.get('token_type'),
            'expires_in': authorization.get('expires_in'),
            'scope': authorization.get('scope'),
        })
        self._set_authorization_tokens(authorization)
        return authorization

    def refresh(self):
        """
        Exchange the stored refresh token for a new access/refresh token pair.

        Returns:
            dict: Token response from Azure AD

        Raises:
            AuthorizationError: If there is no refresh token or the exchange fails
        """
        if not self._tokens.refresh_token:
            raise AuthorizationError("Cannot renew the current token, please try login again!")
        self._debug('RefreshToken', 'Renewing the access token')
        try:
            return self._request_authorization_token(self._tokens.refresh_token, GRANT_REFRESH_TOKEN)
        except AuthorizationError as error:
            self._debug('RefreshToken', error)
            raise AuthorizationError("Cannot renew the current token, please try login again!") from error

    def authenticate_interactive(self):
        """
        Sign in to Microsoft and obtain the access and refresh tokens.

        With a pre-supplied access token, only checks it with a 'me' request.
        Otherwise prints the sign-in URL, asks for the authorization code and
        exchanges it for a token pair.

        Raises:
            AuthorizationError: If the sign-in authority is unreachable or the code exchange fails
        """
        print("[*] SharePoint authentication step\n")
        if self._tokens.access_token:
            print("[KEY] SharePoint access token already informed.\n")
            self.get_my_info()
            return

        try:
            authorize_url = self.get_authorize_url()
        except (ValueError, requests.exceptions.RequestException) as error:
            self._debug('AuthorizeUrl', error)
            raise AuthorizationError("Cannot reach the Microsoft sign-in authority") from error

        self._tokens.authorization_code = self._prompt(
            "[!] Please open the following URL in your browser and follow the steps until you see a blank page:\n"
            f"{authorize_url}\n\n"
            "When ready, please enter the value of the code parameter "
            "(from the URL of the blank page) and press return...\n"
        ).strip()
        print()
        self._request_authorization_token(self._tokens.authorization_code)

    def logout(self):
        """Log out - clear the tokens and any pending authorization code."""
        self._tokens.clear()

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def _send(self, url, spec):
        headers = {'Authorization': f"Bearer {self._tokens.access_token}"}
        headers.update(spec.headers or {})
        if isinstance(spec.body, (dict, list)):
            return self._session.request(spec.method, url, headers=headers, json=spec.body)
        return self._session.request(spec.method, url, headers=headers, data=spec.body)

    def _parse_body(self, response):
        if not response.content:
            if not response.ok:
                raise TransientRequestError(f"{response.status_code} {response.reason}")
            return None
        try:
            payload = response.json()
        except ValueError as error:
            raise TransientRequestError(
                f"Invalid JSON body: {response.status_code} {response.reason}"
            ) from error
        if not response.ok and not (isinstance(payload, dict) and payload.get('error')):
            raise TransientRequestError(f"{response.status_code} {response.reason}")
        return payload

    def _renew_token_when_needed(self, spec):
        url = f"{self._graph_url}{spec.path}"
        response = self._send(url, spec)
        if response.status_code == 401:
            self.refresh()
            response = self._send(url, spec)
        self._debug_response('RenewTokenWhenNeeded', response)
        if response.status_code == 401:
            raise AuthorizationError(response.reason or 'Unauthorized')
        return self._parse_body(response)

    def request(self, spec):
        """
        Make a Graph API request with token refresh and bounded retry.

        Retry Logic:
            - 401: refresh the token once and repeat the request; a second 401
              raises AuthorizationError without further attempts
            - Error payload matching 'IO error during request payload read':
              returns None
            - Other error payloads, network errors, invalid bodies: retried
              immediately, MAX_RETRIES attempts in total

        Args:
            spec (RequestSpec): The request to make

        Returns:
            dict: Decoded JSON body
            None: Empty body, or the ignorable IO error

        Raises:
            AuthorizationError: If not signed in, or the token cannot be renewed
            MaxRetriesExceededError: If every attempt failed
        """
        if not self._tokens.access_token:
            raise AuthorizationError("Not signed in, please run the authentication step first!")

        attempt = 1
        while attempt <= MAX_RETRIES:
            try:
                payload = self._renew_token_when_needed(spec)
                self._debug('RequestGraphApi', payload)
                if isinstance(payload, dict) and payload.get('error'):
                    message = _error_message(payload['error'])
                    print(f"[!] Graph API error in request [{spec.method}] {spec.path}: {message}")
                    if IGNORABLE_ERROR_PATTERN.search(message):
                        return None
                    raise TransientRequestError(
                        f"Error in request [{spec.method}]: {spec.path}", payload['error']
                    )
                return payload
            except (TransientRequestError, requests.exceptions.RequestException) as error:
                self._debug('RequestGraphApi', {
                    'url': spec.path,
                    'conflict': spec.conflict,
                    'error': f"Retrying {attempt} time(s)",
                    'thrown': repr(error),
                    'payload': getattr(error, 'error', None),
                })
                attempt += 1

        raise MaxRetriesExceededError(spec.method, spec.path)

    def request_get(self, path, headers=None):
        """Make a GET request to a Graph endpoint (e.g. 'me')."""
        return self.request(RequestSpec(path, 'GET', headers=headers))

    def request_post(self, path, body=None, headers=None):
        """Make a POST request to a Graph endpoint."""
        return self.request(RequestSpec(path, 'POST', body=body, headers=headers))

    def request_put(self, path, body=None, headers=None, conflict=None):
        """Make a PUT request to a Graph endpoint."""
        return self.request(RequestSpec(path, 'PUT', body=body, headers=headers, conflict=conflict))

    def request_delete(self, path, body=None, headers=None):
        """Make a DELETE request to a Graph endpoint."""
        return self.request(RequestSpec(path, 'DELETE', body=body, headers=headers))

    def get_my_info(self):
        """Return the signed-in user's profile (also used to validate a token)."""
        return self.request_get('me')

    # ------------------------------------------------------------------
    # Uploads
    # ------------------------------------------------------------------

    def build_upload_path(self, folder_name, file_name):
        """
        Build the Graph path of a file upload.

        Format: <sharepoint_folder>:/<folder_name>/<normalized name>:/content
        Only the last '/' segment of file_name is used as the remote name.
        """
        remote_name = encode(file_name.split('/')[-1])
        return f"{self._sharepoint_folder}:/{folder_name}/{remote_name}:/content"

    def upload_file(self, attachment_dir, folder_name, file_name, conflict=None):
        """
        Upload a local file to a SharePoint folder.

        Args:
            attachment_dir (str): Local directory holding the file
            folder_name (str): Remote folder, created by SharePoint when missing
            file_name (str): File name relative to attachment_dir
            conflict (ConflictPolicy): Conflict resolution, passed through

        Returns:
            dict: Uploaded drive item metadata
            None: If the local file does not exist (or the ignorable IO error)

        Raises:
            UploadError: If reading or uploading the file fails

        Example:
            # Reads '~/attachments/myfile.pdf' into 'me/drive/root:/My Docs/myfile.pdf'
            service.upload_file('~/attachments', 'My Docs', 'myfile.pdf')
        """
        remote_path = self.build_upload_path(folder_name, file_name)
        file_path = os.path.expanduser(f"{attachment_dir}/{file_name}")
        try:
            exists = file_exists(file_path)
            self._debug('UploadFile', f"File exists? {exists}")
            if not exists:
                self._debug('UploadFile', f"File {file_path} not exists.")
                return None

            file_content = read_file_bytes(file_path)
            return self.request_put(remote_path, file_content, conflict=conflict)

        except (GraphServiceError, OSError) as error:
            self._debug('UploadFile', {'url': remote_path, 'error': repr(error)})
            raise UploadError(remote_path, error) from error

    def get_sharepoint_url(self, url):
        """
        Return the browser URL of an uploaded file.

        Args:
            url (str): Partial file URL (e.g. 'My Docs/myfile.pdf')

        Returns:
            str: https://<domain>.sharepoint.com/<sharepoint_folder_url><url>
        """
        return SHAREPOINT_DOMAIN_URL.format(domain=self._domain) + self._sharepoint_folder_url + url
