#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
SharePoint File Upload Script
=============================

PURPOSE:
    Uploads local files to a SharePoint/OneDrive folder through Microsoft Graph,
    signing in with the OAuth 2.0 authorization code flow. File names are
    normalized so SharePoint accepts them.

SYNOPSIS:
    python main.py <attachment_dir> <folder_name> <file> [<file> ...]

PARAMETERS:
    <attachment_dir>
        Local directory holding the files to upload.
        `Example`: '~/attachments'

    <folder_name>
        Remote folder under the base SharePoint folder (created when missing).
        `Example`: 'My Sharepoint Docs' -> 'me/drive/root:/My Sharepoint Docs/...'

    <file>
        File name relative to <attachment_dir>. Only its last path segment
        is used as the remote name.

ENVIRONMENT (a .env file in the working directory is loaded too):
    MS_GRAPH_CLIENT_ID / MS_GRAPH_CLIENT_SECRET (required)
        Azure AD App Registration credentials. Keep the secret out of version control.
    MS_GRAPH_DOMAIN
        SharePoint tenant name, used to print browser URLs of uploaded files.
    MS_GRAPH_TOKEN
        Pre-supplied access token; skips the interactive sign-in.
    MS_GRAPH_SHAREPOINT_FOLDER / MS_GRAPH_SHAREPOINT_FOLDER_URL
        Base remote folder (default: 'me/drive/root') and its URL prefix
        (default: 'Shared Documents/').
    MS_GRAPH_LOGIN_ENDPOINT / MS_GRAPH_ENDPOINT
        Azure AD and Graph endpoints for special cloud environments.
    MS_GRAPH_DEBUG / MS_GRAPH_LOG_TOKEN
        Print debug events / print the access token ('true' to enable).

EXIT CODES:
    0 - All files processed
    1 - Invalid configuration, sign-in failure, or at least one failed upload
"""

import sys
from sharepoint_uploader.config import parse_config
from sharepoint_uploader.errors import ConfigurationError, GraphServiceError, UploadError
from sharepoint_uploader.graph_api import GraphService
from sharepoint_uploader.monitoring import UploadStatistics


def upload_files(service, config, upload_stats):
    """
    Upload every configured file, recording the outcome of each one.

    Returns:
        int: Number of failed uploads
    """
    failed_count = 0
    for file_name in config.files:
        try:
            drive_item = service.upload_file(config.attachment_dir, config.folder_name, file_name)
        except UploadError as e:
            print(f"[!] {e}: {e.cause}")
            upload_stats.record_failure()
            failed_count += 1
            continue

        upload_stats.record_upload(drive_item)
        if drive_item is None:
            print(f"[=] Skipped (not found or empty response): {file_name}")
        else:
            remote_name = drive_item.get('name', file_name)
            print(f"[✓] Uploaded: {file_name}")
            if config.domain:
                print(f"    {service.get_sharepoint_url(f'{config.folder_name}/{remote_name}')}")
    return failed_count


def main(argv=None):
    """
    Main execution function.

    Process:
        1. Parse configuration from arguments and environment
        2. Sign in to Microsoft (interactive unless a token is supplied)
        3. Upload each file
        4. Print summary statistics and exit with the appropriate code
    """
    try:
        config = parse_config(argv)
        service = GraphService.from_config(config)
    except ConfigurationError as e:
        print(f"[Error] Invalid configuration: {e}")
        print(__doc__)
        sys.exit(1)

    try:
        service.authenticate_interactive()
    except GraphServiceError as e:
        print(f"[Error] Failed to sign in to SharePoint: {e}")
        print("[!] Ensure that:")
        print("    - Your client ID and secret are correct")
        print("    - The authorization code was copied completely")
        print("    - The supplied access token has not expired")
        sys.exit(1)

    print(f"[*] Uploading {len(config.files)} file(s) to: {service.sharepoint_folder}:/{config.folder_name}")

    upload_stats = UploadStatistics()
    failed_count = upload_files(service, config, upload_stats)
    upload_stats.print_summary(len(config.files))

    service.logout()

    if failed_count > 0:
        print(f"[!] {failed_count} file(s) failed to upload")
        sys.exit(1)


if __name__ == "__main__":
    main()
