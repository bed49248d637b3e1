# -*- coding: utf-8 -*-
"""
File handling operations for SharePoint uploads.

This module normalizes arbitrary text (email subjects, free-form file names)
into names SharePoint accepts, encodes them for use in a Graph URL path, and
reads the local files being uploaded.
"""

import os
import random
import re
from urllib.parse import quote, unquote

# Links are removed up to the next space or tilde
LINK_PATTERN = re.compile(r'https?://[^ ~]+')

# Characters SharePoint rejects in a name: " { } * : < > ? / % + |
FORBIDDEN_CHARS_PATTERN = re.compile(r'["{}*:<>?/%+|]')

# Names SharePoint/Windows reserve regardless of the characters they contain
RESERVED_NAMES = frozenset(
    ['.lock', 'CON', 'PRN', 'AUX', 'NUL', '_vti_', 'desktop.ini']
    + [f'COM{i}' for i in range(10)]
    + [f'LPT{i}' for i in range(10)]
)
VTI_MARKER = '_vti_'

# Upper bound (exclusive) of the numeric suffix added to reserved names
RESERVED_SUFFIX_LIMIT = 1000


def strip_links(text):
    """Remove every http(s):// link, up to the next space or tilde."""
    return LINK_PATTERN.sub('', text)


def resolve_reserved_name(name, rng=None):
    """
    Replace names that SharePoint refuses to store.

    A fresh random suffix is drawn on every call, so two calls with the same
    reserved name return different results most of the time.

    Args:
        name (str): Already normalized name
        rng: Random source exposing randrange() (default: the random module)

    Returns:
        str: 'vti<n>' when name contains '_vti_', '<name><n>' when name is a
             reserved name, otherwise name unchanged (n in [0, 1000))
    """
    rng = rng or random
    suffix = str(rng.randrange(RESERVED_SUFFIX_LIMIT))
    if VTI_MARKER in name:
        return 'vti' + suffix
    if name in RESERVED_NAMES:
        return name + suffix
    return name


def normalize(text, rng=None):
    r"""
    Normalize text so it can be used as a SharePoint file or folder name.

    Steps, in order:
    - Remove links
    - Remove " { } * : < > ? / % + |
    - Remove carriage returns and tabs, replace newlines with ' - '
    - Replace & with 'and'
    - Collapse the first run of periods into one period
    - Strip one leading ~, then one leading or trailing period
    - Collapse the first run of whitespace into one space and trim
    - Replace reserved names (see resolve_reserved_name)

    The period and whitespace collapses only touch the first match:
    'a..b..c' becomes 'a.b..c'.

    Args:
        text (str): Arbitrary text
        rng: Random source used for reserved names

    Returns:
        str: Normalized name

    Examples:
        >>> normalize('Ampersand (&)')
        'Ampersand (and)'
        >>> normalize('te...st')
        'te.st'
    """
    normalized = strip_links(text)
    normalized = FORBIDDEN_CHARS_PATTERN.sub('', normalized)
    normalized = re.sub(r'[\r\t]', '', normalized)
    normalized = normalized.replace('\n', ' - ')
    normalized = normalized.replace('&', 'and')
    normalized = re.sub(r'\.+', '.', normalized, count=1)
    normalized = re.sub(r'^~', '', normalized, count=1)
    normalized = re.sub(r'^\.|\.$', '', normalized, count=1)
    normalized = re.sub(r'\s+', ' ', normalized, count=1)
    normalized = normalized.strip()
    return resolve_reserved_name(normalized, rng)


def encode_rfc3986_uri_component(text):
    """
    Percent-encode text as a URI component following RFC 3986.

    Only unreserved characters (letters, digits, - _ . ~) are left as-is,
    so ! ' ( ) * are escaped as well.
    """
    return quote(text, safe='')


def encode(text, rng=None):
    """Normalize text and encode it for a Graph URL path segment."""
    return encode_rfc3986_uri_component(normalize(text, rng))


def decode(text, rng=None):
    """
    Normalize text and decode its percent escapes.

    Normalization strips '%', so decode(encode(s)) only gives back
    normalize(s) when the normalized name holds unreserved characters only.
    """
    return unquote(normalize(text, rng))


def file_exists(file_path):
    """Return True if file_path points to an existing regular file."""
    return os.path.isfile(file_path)


def read_file_bytes(file_path):
    """
    Read a local file in full.

    Args:
        file_path (str): Path to the file

    Returns:
        bytes: File content

    Raises:
        OSError: If the file cannot be read
    """
    with open(file_path, 'rb') as f:
        return f.read()
