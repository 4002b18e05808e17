"""Convert Google People API contacts into a Google-Contacts-style CSV file.

The header is fixed on purpose. Every row is checked against it, so a new
field coming from upstream fails the export instead of silently shifting or
dropping columns.
"""

import csv
import functools
import io
import re
from typing import Any

from cloud_export.errors import ContactSchemaError

CSV_DELIMITER = ";"

MAX_EMAILS = 6
MAX_PHONES = 4
MAX_ADDRESSES = 2
MAX_ORGANIZATIONS = 1
MAX_RELATIONS = 1
MAX_WEBSITES = 1
MAX_EVENTS = 3

SYSTEM_CONTACT_GROUP = "SYSTEM_CONTACT_GROUP"
GROUP_SEPARATOR = " ::: "
PRIMARY_MARKER = "* "

_ADDRESS_FIELDS = {
    "Type": "formattedType",
    "Formatted": "formattedValue",
    "Street": "streetAddress",
    "City": "city",
    "PO Box": "poBox",
    "Region": "region",
    "Postal Code": "postalCode",
    "Country": "country",
    "Extended Address": "extendedAddress",
}

_ORGANIZATION_FIELDS = {
    "Type": "formattedType",
    "Name": "name",
    "Title": "title",
    "Department": "department",
    "Symbol": "symbol",
    "Location": "location",
    "Job Description": "jobDescription",
}


def _numbered(label: str, count: int, fields: list[str]) -> list[str]:
    return [f"{label} {i} - {name}" for i in range(1, count + 1) for name in fields]


CONTACT_CSV_HEADERS: tuple[str, ...] = (
    "Name",
    "Given Name",
    "Additional Name",
    "Family Name",
    "Yomi Name",
    "Given Name Yomi",
    "Additional Name Yomi",
    "Family Name Yomi",
    "Name Prefix",
    "Name Suffix",
    "Initials",
    "Nickname",
    "Short Name",
    "Maiden Name",
    "Birthday",
    "Gender",
    "Location",
    "Billing Information",
    "Directory Server",
    "Mileage",
    "Occupation",
    "Hobby",
    "Sensitivity",
    "Priority",
    "Subject",
    "Notes",
    "Language",
    "Photo",
    "Group Membership",
    *_numbered("E-mail", MAX_EMAILS, ["Type", "Value"]),
    *_numbered("Phone", MAX_PHONES, ["Type", "Value"]),
    *_numbered("Address", MAX_ADDRESSES, list(_ADDRESS_FIELDS)),
    *_numbered(
        "Organization",
        MAX_ORGANIZATIONS,
        ["Type", "Name", "Yomi Name", "Title", "Department", "Symbol", "Location", "Job Description"],
    ),
    *_numbered("Relation", MAX_RELATIONS, ["Type", "Value"]),
    *_numbered("Website", MAX_WEBSITES, ["Type", "Value"]),
    *_numbered("Event", MAX_EVENTS, ["Type", "Value"]),
)

Row = dict[str, str | None]


def _first_name(contact: dict[str, Any]) -> dict[str, Any]:
    names = contact.get("names") or []
    return names[0] if names else {}


def _compare_contacts(a: dict[str, Any], b: dict[str, Any]) -> int:
    a_name, b_name = _first_name(a), _first_name(b)
    for field in ("givenName", "familyName", "displayName"):
        a_value, b_value = a_name.get(field), b_name.get(field)
        # A tier only counts when both sides have it
        if not a_value or not b_value:
            continue
        a_key, b_key = a_value.casefold(), b_value.casefold()
        if a_key != b_key:
            return -1 if a_key < b_key else 1
    return 0


def sort_contacts(contacts: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Sort by given name, then family name, then display name."""
    return sorted(contacts, key=functools.cmp_to_key(_compare_contacts))


def format_date(date: dict[str, Any] | None) -> str | None:
    """Format a People API date as YYYY-MM-DD, with '-' for missing parts.

    A missing year is written as " -" (leading space), like Google's own export.
    """
    if not date:
        return None
    year = str(date["year"]).zfill(4) if date.get("year") else " -"
    month = str(date["month"]).zfill(2) if date.get("month") else "-"
    day = str(date["day"]).zfill(2) if date.get("day") else "-"
    return f"{year}-{month}-{day}"


def format_photo(photo: dict[str, Any] | None) -> str | None:
    """Return the full-size URL of a real contact photo, None for generated avatars."""
    url = (photo or {}).get("url")
    if not url or "/contacts/" not in url:
        return None
    return re.sub(r"=s100$", "", url)


def format_group_memberships(
    contact_groups: list[dict[str, Any]],
    memberships: list[dict[str, Any]] | None,
) -> str:
    groups_by_name = {g.get("resourceName"): g for g in contact_groups}
    names: list[str] = []
    for membership in memberships or []:
        group_membership = membership.get("contactGroupMembership") or {}
        group_id = group_membership.get("contactGroupId")
        if not group_id:
            continue
        group = groups_by_name.get(group_membership.get("contactGroupResourceName"))
        if group is None:
            names.append(group_id)
            continue
        prefix = PRIMARY_MARKER if group.get("groupType") == SYSTEM_CONTACT_GROUP else ""
        names.append(prefix + (group.get("name") or group_id))
    return GROUP_SEPARATOR.join(names)


def _expand(label: str, items: list[dict[str, Any]] | None, fields: dict[str, Any]) -> Row:
    """Spread repeated values into "<label> <n> - <field>" columns.

    fields maps column suffix to either a People API key or a callable.
    """
    row: Row = {}
    for i, item in enumerate(items or [], start=1):
        for column, source in fields.items():
            value = source(item) if callable(source) else item.get(source)
            row[f"{label} {i} - {column}"] = value
    return row


def _format_emails(emails: list[dict[str, Any]] | None) -> Row:
    row = _expand("E-mail", emails, {"Value": "value", "Type": "formattedType"})
    if emails:
        row["E-mail 1 - Type"] = PRIMARY_MARKER + (row.get("E-mail 1 - Type") or "")
    return row


def _check_singular_fields(contact: dict[str, Any]) -> None:
    for field in ("names", "birthdays", "genders", "biographies"):
        if len(contact.get(field) or []) > 1:
            display_name = _first_name(contact).get("displayName")
            msg = (
                f"The contact {display_name!r} ({contact.get('resourceName')}) has more than "
                f"one name, birthday, gender, or biography ({field})"
            )
            raise ContactSchemaError(msg)


def contact_to_row(contact_groups: list[dict[str, Any]], contact: dict[str, Any]) -> Row:
    """Map one contact to CSV columns. Absent values stay None."""
    _check_singular_fields(contact)

    name = _first_name(contact)
    birthdays = contact.get("birthdays") or [{}]
    genders = contact.get("genders") or [{}]
    biographies = contact.get("biographies") or [{}]
    photos = contact.get("photos") or [None]

    return {
        "Name": name.get("displayName"),
        "Given Name": name.get("givenName"),
        "Additional Name": name.get("middleName"),
        "Family Name": name.get("familyName"),
        "Name Prefix": name.get("honorificPrefix"),
        "Name Suffix": name.get("honorificSuffix"),
        "Birthday": format_date(birthdays[0].get("date")),
        "Gender": genders[0].get("formattedValue"),
        "Notes": biographies[0].get("value"),
        "Photo": format_photo(photos[0]),
        "Group Membership": format_group_memberships(contact_groups, contact.get("memberships")),
        **_format_emails(contact.get("emailAddresses")),
        **_expand("Phone", contact.get("phoneNumbers"), {"Value": "value", "Type": "formattedType"}),
        **_expand("Address", contact.get("addresses"), _ADDRESS_FIELDS),
        **_expand("Organization", contact.get("organizations"), _ORGANIZATION_FIELDS),
        **_expand("Relation", contact.get("relations"), {"Type": "formattedType", "Value": "person"}),
        **_expand("Website", contact.get("urls"), {"Type": "formattedType", "Value": "value"}),
        **_expand(
            "Event",
            contact.get("events"),
            {"Type": "formattedType", "Value": lambda event: format_date(event.get("date"))},
        ),
    }


def _finalize_rows(contacts: list[dict[str, Any]], rows: list[Row]) -> list[dict[str, str]]:
    headers = set(CONTACT_CSV_HEADERS)
    finalized: list[dict[str, str]] = []
    for contact, row in zip(contacts, rows, strict=True):
        for key, value in row.items():
            if key not in headers:
                display_name = _first_name(contact).get("displayName")
                msg = (
                    f"There is no matching CSV header for the key {key!r} "
                    f"(value: {value!r}, contact: {display_name!r})"
                )
                raise ContactSchemaError(msg)
        finalized.append({k: "" if v is None else v for k, v in row.items()})
    return finalized


def generate_contacts_csv(
    contact_groups: list[dict[str, Any]],
    contacts: list[dict[str, Any]],
) -> str:
    """Render contacts as ';'-delimited CSV text with the fixed header.

    Raises:
        ContactSchemaError: A contact has several primary names, birthdays,
            genders or biographies, or produces a column not in the header.
    """
    sorted_contacts = sort_contacts(contacts)
    rows = [contact_to_row(contact_groups, contact) for contact in sorted_contacts]
    records = _finalize_rows(sorted_contacts, rows)

    out = io.StringIO()
    writer = csv.DictWriter(
        out,
        fieldnames=CONTACT_CSV_HEADERS,
        delimiter=CSV_DELIMITER,
        restval="",
        lineterminator="\n",
    )
    writer.writeheader()
    writer.writerows(records)
    return out.getvalue()
