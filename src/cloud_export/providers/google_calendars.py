"""Export Google calendars, their events and their iCalendar (CalDAV) export."""

from collections.abc import Collection
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

from loguru import logger

from cloud_export.api import GoogleApi
from cloud_export.pagination import walk_pages
from cloud_export.stabilize import stabilize_events

if TYPE_CHECKING:
    from loguru import Logger

CALENDAR_API_URL = "https://www.googleapis.com/calendar/v3"
CALDAV_API_URL = "https://apidata.googleusercontent.com/caldav/v2"

CALENDAR_LIST_PAGE_SIZE = 250
EVENTS_PAGE_SIZE = 2500


class GoogleCalendarsProvider:
    """Fetch all calendars of the authenticated user."""

    scopes = (
        "https://www.googleapis.com/auth/calendar.readonly",
        "https://www.googleapis.com/auth/calendar.events.readonly",
    )

    def __init__(
        self,
        api: GoogleApi,
        *,
        stabilize_data: bool = False,
        event_details: bool = True,
        calendar_export: bool = True,
        log: "Logger | None" = None,
    ) -> None:
        self.api = api
        self.stabilize_data = stabilize_data
        self.event_details = event_details
        self.calendar_export = calendar_export
        self.log = log or logger

    async def get_calendar_list_entries(self) -> list[dict[str, Any]]:
        return await walk_pages(
            self.api.page_fetcher(f"{CALENDAR_API_URL}/users/me/calendarList", items_field="items"),
            page_size=CALENDAR_LIST_PAGE_SIZE,
            description="calendar list entries",
            log=self.log,
        )

    async def get_events(self, calendar_id: str) -> list[dict[str, Any]]:
        events = await walk_pages(
            self.api.page_fetcher(
                f"{CALENDAR_API_URL}/calendars/{quote(calendar_id, safe='')}/events",
                items_field="items",
            ),
            page_size=EVENTS_PAGE_SIZE,
            description=f"events for calendar {calendar_id}",
            log=self.log,
        )
        return stabilize_events(events, enabled=self.stabilize_data)

    async def get_caldav_export(self, calendar_id: str) -> str:
        return await self.api.get_text(f"{CALDAV_API_URL}/{quote(calendar_id, safe='')}/events")

    async def get_full_calendar_data(
        self, calendar_ids: Collection[str] | None = None
    ) -> list[dict[str, Any]]:
        """Return one entry per calendar: the list entry, its events and its export.

        Args:
            calendar_ids: Only export calendars with these ids (None: all).
        """
        calendars = await self.get_calendar_list_entries()
        if calendar_ids is not None:
            calendars = [c for c in calendars if c.get("id") in calendar_ids]

        result: list[dict[str, Any]] = []
        for calendar in calendars:
            calendar_id = calendar.get("id", "")
            result.append(
                {
                    "calendar": calendar,
                    "events": {
                        "data": await self.get_events(calendar_id) if self.event_details else None,
                        "export": (
                            await self.get_caldav_export(calendar_id) if self.calendar_export else None
                        ),
                    },
                }
            )
        return result
