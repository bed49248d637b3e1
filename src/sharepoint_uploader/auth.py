# -*- coding: utf-8 -*-
"""
Microsoft authentication module for SharePoint uploads.

This module handles the Azure AD authorization code flow using MSAL
(Microsoft Authentication Library): building the sign-in URL and exchanging
an authorization code or a refresh token for a new token pair.
"""

import msal
from .config import AUTHORIZE_STATE, DEFAULT_LOGIN_ENDPOINT, REDIRECT_URI, SCOPES
from .errors import AuthorizationError

GRANT_AUTHORIZATION_CODE = 'authorization_code'
GRANT_REFRESH_TOKEN = 'refresh_token'


def create_auth_app(client_id, client_secret, login_endpoint=DEFAULT_LOGIN_ENDPOINT):
    """
    Create the MSAL confidential client used for the user sign-in.

    Args:
        client_id (str): Application (client) ID from Azure AD app registration
        client_secret (str): Client secret value from Azure AD app registration
        login_endpoint (str): Azure AD authentication endpoint (e.g., 'login.microsoftonline.com')

    Returns:
        msal.ConfidentialClientApplication: The MSAL application

    Note:
        The 'common' authority accepts both work/school and personal accounts.
        MSAL contacts the authority when the application is created.
    """
    # Format: https://login.microsoftonline.com/common
    authority_url = f'https://{login_endpoint}/common'

    return msal.ConfidentialClientApplication(
        client_id=client_id,
        client_credential=client_secret,
        authority=authority_url
    )


def get_authorization_url(app, scopes=SCOPES, redirect_uri=REDIRECT_URI, state=AUTHORIZE_STATE):
    """
    Build the URL the user opens in a browser to grant access.

    After consenting, the browser lands on a blank page whose URL carries
    the authorization code in its 'code' query parameter.
    """
    return app.get_authorization_request_url(
        list(scopes),
        state=state,
        redirect_uri=redirect_uri
    )


def request_authorization_token(app, token, grant_type=GRANT_AUTHORIZATION_CODE,
                                scopes=SCOPES, redirect_uri=REDIRECT_URI):
    """
    Exchange an authorization code or a refresh token at the token endpoint.

    Both grants hit the same endpoint; only the grant parameter differs.

    Args:
        app: MSAL application from create_auth_app()
        token (str): Authorization code or refresh token
        grant_type (str): 'authorization_code' or 'refresh_token'
        scopes (tuple): Delegated scopes to request
        redirect_uri (str): Redirect URI registered for the app

    Returns:
        dict: Token dictionary containing:
            - 'access_token': The bearer token for Graph API calls
            - 'refresh_token': Long-lived token for the next refresh
            - 'expires_in': Token lifetime in seconds

    Raises:
        AuthorizationError: If the response carries an error payload
        ValueError: If grant_type is unknown
    """
    if grant_type == GRANT_REFRESH_TOKEN:
        authorization = app.acquire_token_by_refresh_token(token, scopes=list(scopes))
    elif grant_type == GRANT_AUTHORIZATION_CODE:
        authorization = app.acquire_token_by_authorization_code(
            token, scopes=list(scopes), redirect_uri=redirect_uri
        )
    else:
        raise ValueError(f"Unsupported grant type: {grant_type}")

    if not authorization or authorization.get('error') or 'access_token' not in authorization:
        authorization = authorization or {}
        message = authorization.get('error_description') or authorization.get('error')
        raise AuthorizationError(message or 'Error in get authorization token')

    return authorization
