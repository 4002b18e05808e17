"""Export Google contacts and contact groups through the People API."""

from typing import TYPE_CHECKING, Any

from loguru import logger

from cloud_export.api import GoogleApi
from cloud_export.pagination import walk_pages

if TYPE_CHECKING:
    from loguru import Logger

PEOPLE_API_URL = "https://people.googleapis.com/v1"
PAGE_SIZE = 1000

PERSON_FIELDS = ",".join(
    [
        "addresses",
        "ageRanges",
        "biographies",
        "birthdays",
        "calendarUrls",
        "clientData",
        "coverPhotos",
        "emailAddresses",
        "events",
        "externalIds",
        "genders",
        "imClients",
        "interests",
        "locales",
        "locations",
        "memberships",
        "metadata",
        "miscKeywords",
        "names",
        "nicknames",
        "occupations",
        "organizations",
        "phoneNumbers",
        "photos",
        "relations",
        "sipAddresses",
        "skills",
        "urls",
        "userDefined",
    ]
)


class GoogleContactsProvider:
    scopes = ("https://www.googleapis.com/auth/contacts.readonly",)

    def __init__(self, api: GoogleApi, log: "Logger | None" = None) -> None:
        self.api = api
        self.log = log or logger

    async def get_contact_groups(self) -> list[dict[str, Any]]:
        return await walk_pages(
            self.api.page_fetcher(
                f"{PEOPLE_API_URL}/contactGroups",
                items_field="contactGroups",
                page_size_param="pageSize",
            ),
            page_size=PAGE_SIZE,
            description="contact groups",
            log=self.log,
        )

    async def get_contacts(self) -> list[dict[str, Any]]:
        return await walk_pages(
            self.api.page_fetcher(
                f"{PEOPLE_API_URL}/people/me/connections",
                items_field="connections",
                page_size_param="pageSize",
                params={"personFields": PERSON_FIELDS},
            ),
            page_size=PAGE_SIZE,
            description="contacts",
            log=self.log,
        )
