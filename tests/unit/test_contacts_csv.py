"""Tests for the contacts CSV transformer."""

import csv
import io
from typing import Any

import pytest

from cloud_export.contacts_csv import (
    CONTACT_CSV_HEADERS,
    format_date,
    format_group_memberships,
    format_photo,
    generate_contacts_csv,
    sort_contacts,
)
from cloud_export.errors import ContactSchemaError

CONTACT_GROUPS = [
    {"resourceName": "contactGroups/myContacts", "name": "myContacts", "groupType": "SYSTEM_CONTACT_GROUP"},
    {"resourceName": "contactGroups/abc", "name": "Family", "groupType": "USER_CONTACT_GROUP"},
]


def _contact(
    given: str | None = None,
    family: str | None = None,
    display: str | None = None,
    **fields: Any,
) -> dict[str, Any]:
    name = {k: v for k, v in {"givenName": given, "familyName": family, "displayName": display}.items() if v}
    return {"resourceName": f"people/{given or family or display}", "names": [name], **fields}


def _parse(csv_text: str) -> list[dict[str, str]]:
    return list(csv.DictReader(io.StringIO(csv_text), delimiter=";"))


def _names(contacts: list[dict[str, Any]]) -> list[str | None]:
    return [c["names"][0].get("givenName") or c["names"][0].get("familyName") for c in contacts]


# --- Sorting ---


def test_sort_contacts_falls_back_from_given_to_family_name() -> None:
    """A missing given name on one side defers to the next tier."""
    contacts = [_contact(given="Bob"), _contact(given="Alice"), _contact(family="Zeta")]

    assert _names(sort_contacts(contacts)) == ["Alice", "Bob", "Zeta"]


def test_sort_contacts_uses_family_then_display_name_on_ties() -> None:
    contacts = [
        _contact(given="Ann", family="Young"),
        _contact(given="Ann", family="Adams", display="Ann B"),
        _contact(given="Ann", family="Adams", display="Ann A"),
    ]

    result = sort_contacts(contacts)

    assert [c["names"][0]["displayName"] for c in result[:2]] == ["Ann A", "Ann B"]
    assert result[2]["names"][0]["familyName"] == "Young"


def test_sort_contacts_does_not_modify_input() -> None:
    contacts = [_contact(given="Bob"), _contact(given="Alice")]

    sort_contacts(contacts)

    assert _names(contacts) == ["Bob", "Alice"]


# --- Field formatting ---


def test_format_date_pads_all_parts() -> None:
    assert format_date({"year": 1990, "month": 3, "day": 7}) == "1990-03-07"


def test_format_date_uses_placeholders_for_missing_parts() -> None:
    """A missing year becomes ' -', missing month or day become '-'."""
    assert format_date({"month": 12, "day": 24}) == " --12-24"
    assert format_date({"year": 2001}) == "2001----"


def test_format_date_returns_none_without_date() -> None:
    assert format_date(None) is None


def test_format_photo_keeps_only_real_contact_photos() -> None:
    real = {"url": "https://lh3.googleusercontent.com/contacts/ABC123=s100"}
    avatar = {"url": "https://lh3.googleusercontent.com/cm/XYZ=s100", "default": True}

    assert format_photo(real) == "https://lh3.googleusercontent.com/contacts/ABC123"
    assert format_photo(avatar) is None
    assert format_photo(None) is None


def test_format_group_memberships_marks_system_groups() -> None:
    memberships = [
        {
            "contactGroupMembership": {
                "contactGroupId": "myContacts",
                "contactGroupResourceName": "contactGroups/myContacts",
            }
        },
        {"contactGroupMembership": {"contactGroupId": "abc", "contactGroupResourceName": "contactGroups/abc"}},
        {"domainMembership": {"inViewerDomain": True}},
    ]

    assert format_group_memberships(CONTACT_GROUPS, memberships) == "* myContacts ::: Family"


# --- CSV generation ---


def test_generate_contacts_csv_uses_fixed_header_and_semicolons() -> None:
    csv_text = generate_contacts_csv(CONTACT_GROUPS, [_contact(given="Ada", display="Ada")])

    header_line = csv_text.splitlines()[0]
    assert header_line.split(";") == list(CONTACT_CSV_HEADERS)


def test_generate_contacts_csv_writes_one_row_per_contact_in_sorted_order() -> None:
    contacts = [_contact(given="Bob", display="Bob"), _contact(given="Alice", display="Alice")]

    rows = _parse(generate_contacts_csv(CONTACT_GROUPS, contacts))

    assert [row["Name"] for row in rows] == ["Alice", "Bob"]


def test_generate_contacts_csv_expands_repeated_fields() -> None:
    contact = _contact(
        given="Ada",
        family="Lovelace",
        display="Ada Lovelace",
        emailAddresses=[
            {"value": "ada@example.com", "formattedType": "Home"},
            {"value": "ada@work.example", "formattedType": "Work"},
        ],
        phoneNumbers=[{"value": "+44 20 7946 0000", "formattedType": "Mobile"}],
        addresses=[{"formattedType": "Home", "city": "London", "country": "UK"}],
        organizations=[{"name": "Analytical Engines", "title": "Programmer"}],
        urls=[{"value": "https://example.com", "formattedType": "Blog"}],
        events=[{"formattedType": "Anniversary", "date": {"month": 7, "day": 8}}],
        birthdays=[{"date": {"year": 1815, "month": 12, "day": 10}}],
        biographies=[{"value": "First programmer"}],
    )

    (row,) = _parse(generate_contacts_csv(CONTACT_GROUPS, [contact]))

    assert row["E-mail 1 - Type"] == "* Home"
    assert row["E-mail 1 - Value"] == "ada@example.com"
    assert row["E-mail 2 - Type"] == "Work"
    assert row["Phone 1 - Value"] == "+44 20 7946 0000"
    assert row["Address 1 - City"] == "London"
    assert row["Organization 1 - Title"] == "Programmer"
    assert row["Website 1 - Type"] == "Blog"
    assert row["Event 1 - Value"] == " --07-08"
    assert row["Birthday"] == "1815-12-10"
    assert row["Notes"] == "First programmer"


def test_generate_contacts_csv_writes_empty_strings_for_absent_values() -> None:
    (row,) = _parse(generate_contacts_csv(CONTACT_GROUPS, [_contact(given="Ada")]))

    assert row["Name"] == ""
    assert row["Birthday"] == ""
    assert row["Photo"] == ""
    assert row["E-mail 1 - Value"] == ""


def test_generate_contacts_csv_rejects_multiple_birthdays() -> None:
    """Singular fields with several values fail before any row is produced."""
    contact = _contact(
        given="Ada",
        display="Ada",
        birthdays=[{"date": {"month": 1, "day": 1}}, {"date": {"month": 2, "day": 2}}],
    )

    with pytest.raises(ContactSchemaError, match="more than one name, birthday"):
        generate_contacts_csv(CONTACT_GROUPS, [_contact(given="Bob"), contact])


def test_generate_contacts_csv_rejects_multiple_names() -> None:
    contact = {"resourceName": "people/x", "names": [{"displayName": "A"}, {"displayName": "B"}]}

    with pytest.raises(ContactSchemaError, match="'A'"):
        generate_contacts_csv(CONTACT_GROUPS, [contact])


def test_generate_contacts_csv_rejects_columns_outside_header() -> None:
    """Seven e-mail addresses need a column the fixed header does not have."""
    emails = [{"value": f"ada{i}@example.com", "formattedType": "Other"} for i in range(7)]
    contact = _contact(given="Ada", display="Ada Lovelace", emailAddresses=emails)

    with pytest.raises(ContactSchemaError, match="E-mail 7 - (Value|Type)") as excinfo:
        generate_contacts_csv(CONTACT_GROUPS, [contact])

    assert "Ada Lovelace" in str(excinfo.value)


def test_generate_contacts_csv_quotes_values_containing_delimiter() -> None:
    contact = _contact(given="Ada", display="Ada", biographies=[{"value": "likes; semicolons"}])

    (row,) = _parse(generate_contacts_csv(CONTACT_GROUPS, [contact]))

    assert row["Notes"] == "likes; semicolons"
