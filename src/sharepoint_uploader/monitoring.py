# -*- coding: utf-8 -*-
"""
Upload statistics tracking for SharePoint uploads.
"""


class UploadStatistics:
    """Track upload statistics for an upload run"""

    def __init__(self):
        """Initialize upload statistics"""
        self.stats = {
            'uploaded_files': 0,
            'skipped_files': 0,   # Missing locally, or empty result from Graph
            'failed_files': 0,
            'bytes_uploaded': 0,
        }

    def record_upload(self, drive_item):
        """
        Record the result of GraphService.upload_file().

        Args:
            drive_item (dict): Uploaded drive item metadata, or None when nothing was uploaded
        """
        if drive_item is None:
            self.stats['skipped_files'] += 1
            return
        self.stats['uploaded_files'] += 1
        self.stats['bytes_uploaded'] += drive_item.get('size') or 0

    def record_failure(self):
        self.stats['failed_files'] += 1

    def print_summary(self, total_files):
        """
        Print final summary report of upload statistics.

        Args:
            total_files (int): Total number of files processed
        """
        print(f"[STATS] Upload Statistics:")
        print(f"   - Files uploaded:           {self.stats['uploaded_files']:>6}")
        print(f"   - Files skipped:            {self.stats['skipped_files']:>6}")
        print(f"   - Failed uploads:           {self.stats['failed_files']:>6}")
        print(f"   - Total files processed:    {total_files:>6}")
        print(f"\n[DATA] Transfer Summary:")
        print(f"   - Data uploaded:   {format_bytes(self.stats['bytes_uploaded'])}")


def format_bytes(bytes_value):
    """
    Convert bytes to human-readable format.

    Args:
        bytes_value (int): Number of bytes to format

    Returns:
        str: Human-readable string (e.g., "1.5 MB")
    """
    for unit in ['B', 'KB', 'MB', 'GB']:
        if bytes_value < 1024.0:
            return f"{bytes_value:.1f} {unit}"
        bytes_value /= 1024.0
    return f"{bytes_value:.1f} TB"
