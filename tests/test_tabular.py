from __future__ import annotations

import pytest

from address_resolver.geocoding.models import AddressRow, Coordinates, Status
from address_resolver.tabular import (
    ColumnRoleResolver,
    ColumnRoles,
    default_output_path,
    export_rows,
    extract_raw_address,
    parse_prior_coordinates,
    read_records,
)
from address_resolver.utils.errors import ColumnDetectionError


def test_detects_hebrew_headers():
    roles = ColumnRoleResolver().resolve(["שם", "רחוב", "מספר בית", "טלפון", "ישוב", "lat", "lon"])

    assert roles == ColumnRoles(street="רחוב", number="מספר בית", city="ישוב", lat="lat", lon="lon")


def test_phone_column_is_not_a_house_number():
    roles = ColumnRoleResolver().resolve(["Phone Number", "Street", "House"])

    assert roles.number == "House"
    assert roles.street == "Street"
    assert roles.city is None


def test_each_header_takes_one_role():
    roles = ColumnRoleResolver().resolve(["Address", "City"])

    assert roles.street == "Address"
    assert roles.number is None
    assert roles.city == "City"


def test_missing_address_columns_raise():
    with pytest.raises(ColumnDetectionError):
        ColumnRoleResolver().resolve(["name", "lat", "lon"])


def test_extract_raw_address_uses_default_city():
    roles = ColumnRoles(street="רחוב", number="מספר", city="עיר")

    assert extract_raw_address({"רחוב": " הרצל ", "מספר": "5", "עיר": ""}, roles, "נתיבות") == "הרצל 5 נתיבות"
    assert extract_raw_address({"רחוב": "הרצל", "מספר": "", "עיר": "באר שבע"}, roles, "נתיבות") == "הרצל באר שבע"


def test_extract_raw_address_without_street_column():
    roles = ColumnRoles(street=None, number="מספר", city=None)

    assert extract_raw_address({"מספר": "7"}, roles, "נתיבות") == "7 נתיבות"


@pytest.mark.parametrize(
    ("lat", "lon", "expected"),
    [
        ("31.42", "34.59", Coordinates(31.42, 34.59)),
        ("", "34.59", None),
        ("abc", "34.59", None),
        ("nan", "nan", None),
    ],
)
def test_parse_prior_coordinates(lat, lon, expected):
    roles = ColumnRoles(street="s", number=None, city=None)

    assert parse_prior_coordinates({"lat": lat, "lon": lon}, roles) == expected


def test_default_output_path(tmp_path):
    assert default_output_path(tmp_path / "addresses.xlsx") == tmp_path / "addresses-fixed.xlsx"
    assert default_output_path("in.csv").name == "in-fixed.csv"


def test_read_records_missing_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        read_records(tmp_path / "nope.csv")


def exported_rows():
    return [
        AddressRow(
            0,
            {"id": "007", "רחוב": "הרצל", "lat": "", "lon": ""},
            "הרצל",
            final_coords=Coordinates(31.42, 34.59),
            status=Status.CONFIRMED,
            message="ok",
        ),
        AddressRow(
            1,
            {"id": "008", "רחוב": "", "lat": "31.0", "lon": "34.0"},
            "",
            status=Status.SKIPPED,
            message="skipped",
        ),
        AddressRow(
            2,
            {"id": "009", "רחוב": "ליד", "lat": "31.1", "lon": "34.1"},
            "ליד",
            status=Status.NOT_FOUND,
            message="missing",
        ),
    ]


@pytest.mark.parametrize("suffix", [".csv", ".xlsx"])
def test_export_then_read(tmp_path, suffix):
    roles = ColumnRoles(street="רחוב", number=None, city=None)
    path = export_rows(exported_rows(), roles, tmp_path / "out" / f"fixed{suffix}")

    records = read_records(path)

    assert [r["id"] for r in records] == ["007", "008", "009"]
    assert float(records[0]["lat"]) == pytest.approx(31.42)
    assert records[1]["lat"] == ""
    # untouched prior coordinates survive for unresolved rows
    assert records[2]["lat"] == "31.1"
    assert [r["message"] for r in records] == ["ok", "skipped", "missing"]
