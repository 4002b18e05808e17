"""Remove run-to-run noise from exported data so repeated exports diff cleanly."""

import copy
import re
from typing import Any

from loguru import logger

EXPORT_TIMESTAMP_SENTINEL = "STABILIZED"
SOA_SERIAL_SENTINEL = "0000000000"

# ";; Exported:   2024-01-31 10:11:12" in Cloudflare's BIND export header
_EXPORTED_RE = re.compile(r"^(;;[ \t]*Exported:[ \t]*).*$", re.MULTILINE)
# "<name> <ttl> IN SOA <mname> <rname> <serial> <refresh> ..."
_SOA_SERIAL_RE = re.compile(r"(\bSOA[ \t]+\S+[ \t]+\S+[ \t]+)\d+")

_CONTACTS_PHOTO_PREFERENCE = "goo.contactsPhotoUrl"


def stabilize_zone_export(export: str, *, enabled: bool) -> str:
    """Replace the export timestamp and the SOA serial with fixed values."""
    if not enabled:
        return export
    logger.info("Stabilizing DNS zone export")
    export = _EXPORTED_RE.sub(lambda m: m.group(1) + EXPORT_TIMESTAMP_SENTINEL, export)
    return _SOA_SERIAL_RE.sub(lambda m: m.group(1) + SOA_SERIAL_SENTINEL, export)


def stabilize_events(events: list[dict[str, Any]], *, enabled: bool) -> list[dict[str, Any]]:
    """Return calendar events with reminders sorted and contact photo URLs blanked.

    Google returns reminder overrides in no particular order, and the
    contact photo URL in birthday gadgets is a signed URL that changes on
    every request. The input list is not modified.
    """
    if not enabled:
        return events
    logger.info("Stabilizing {} calendar events", len(events))
    events = copy.deepcopy(events)
    for event in events:
        overrides = (event.get("reminders") or {}).get("overrides")
        if overrides:
            overrides.sort(key=lambda reminder: reminder.get("minutes") or 0)
        preferences = (event.get("gadget") or {}).get("preferences")
        if preferences and preferences.get(_CONTACTS_PHOTO_PREFERENCE):
            preferences[_CONTACTS_PHOTO_PREFERENCE] = ""
    return events
