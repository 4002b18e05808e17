"""Per-service exporters."""

from cloud_export.providers.cloudflare import CloudflareZonesProvider
from cloud_export.providers.github import GitHubIssuesProvider
from cloud_export.providers.google import GoogleData, GoogleExporter, google_scopes
from cloud_export.providers.google_calendars import GoogleCalendarsProvider
from cloud_export.providers.google_contacts import GoogleContactsProvider

__all__ = [
    "CloudflareZonesProvider",
    "GitHubIssuesProvider",
    "GoogleCalendarsProvider",
    "GoogleContactsProvider",
    "GoogleData",
    "GoogleExporter",
    "google_scopes",
]
