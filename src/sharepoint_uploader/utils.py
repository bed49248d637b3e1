# -*- coding: utf-8 -*-
"""
Shared utility functions for SharePoint upload operations.

This module provides the debug / token-logging switches read from the environment.
"""

import os


def _env_flag(name, environ=None):
    environ = os.environ if environ is None else environ
    return str(environ.get(name, 'false')).lower() == 'true'


def is_debug_enabled(environ=None):
    """
    Check if debug mode is enabled via the MS_GRAPH_DEBUG environment variable.

    Returns:
        bool: True if debug mode is enabled, False otherwise
    """
    return _env_flag('MS_GRAPH_DEBUG', environ)


def is_token_logging_enabled(environ=None):
    """
    Check if access tokens may be printed (MS_GRAPH_LOG_TOKEN).

    This is security sensitive and off unless explicitly set to 'true'.

    Returns:
        bool: True if token logging is enabled, False otherwise
    """
    return _env_flag('MS_GRAPH_LOG_TOKEN', environ)


def print_debug_block(operation, message):
    """Print a debug event keyed by the operation that produced it."""
    print(f"\n[DEBUG] {operation}")
    print(message)
    print()
