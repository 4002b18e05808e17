"""Run the Google calendar and contact exports of one step."""

from collections.abc import Collection
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from loguru import logger

from cloud_export.auth import GoogleAuthorizer
from cloud_export.contacts_csv import generate_contacts_csv
from cloud_export.providers.google_calendars import GoogleCalendarsProvider
from cloud_export.providers.google_contacts import GoogleContactsProvider
from cloud_export.steps import GoogleFeatures

if TYPE_CHECKING:
    from loguru import Logger


@dataclass
class ContactsData:
    contact_groups: list[dict[str, Any]]
    contacts: list[dict[str, Any]]
    csv: str


@dataclass
class GoogleData:
    """Result of a Google step. Disabled exports stay None."""

    calendars: list[dict[str, Any]] | None = None
    contacts: ContactsData | None = None


def google_scopes(features: GoogleFeatures) -> list[str]:
    """OAuth scopes needed for the enabled features."""
    scopes: list[str] = []
    if features.calendars:
        scopes += GoogleCalendarsProvider.scopes
    if features.contacts:
        scopes += GoogleContactsProvider.scopes
    return scopes


class GoogleExporter:
    """Authorize, then export calendars and contacts one after the other."""

    def __init__(
        self,
        authorizer: GoogleAuthorizer,
        features: GoogleFeatures,
        *,
        step_id: str = "Google",
        calendar_ids: Collection[str] | None = None,
        log: "Logger | None" = None,
    ) -> None:
        self.step_id = step_id
        self.authorizer = authorizer
        self.features = features
        self.calendar_ids = calendar_ids
        self.log = log or logger

    async def get_data(self) -> GoogleData:
        self.log.info("Starting to authorize with Google")
        api = await self.authorizer.get_client()

        result = GoogleData()

        if self.features.calendars:
            self.log.info("Starting to export Google Calendars")
            calendars_provider = GoogleCalendarsProvider(
                api,
                stabilize_data=self.features.stabilize_data,
                event_details=self.features.event_details,
                calendar_export=self.features.calendar_export,
                log=self.log.bind(step=f"{self.step_id}-Calendars"),
            )
            result.calendars = await calendars_provider.get_full_calendar_data(self.calendar_ids)

        if self.features.contacts:
            self.log.info("Starting to export Google Contacts")
            contacts_provider = GoogleContactsProvider(
                api, log=self.log.bind(step=f"{self.step_id}-Contacts")
            )
            contact_groups = await contacts_provider.get_contact_groups()
            contacts = await contacts_provider.get_contacts()

            self.log.info("Starting to transform Google Contacts to CSV")
            csv_text = generate_contacts_csv(contact_groups, contacts)
            result.contacts = ContactsData(contact_groups=contact_groups, contacts=contacts, csv=csv_text)

        return result
