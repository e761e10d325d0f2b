"""Tests for turning raw dashboard table rows into typed bill records."""

from datetime import date
from decimal import Decimal

import pytest

from src.clients.dashboard.records import records_from_tables, rows_from_table
from src.clients.reconciliation.schemas import BillRecord, Property, ServiceType, classify_service

HEADERS = ["Asset", "Service", "Provider", "Initial date", "Final date", "Subtotal", "Taxes", "Total"]


def test_rows_keep_only_wanted_columns():
    rows = rows_from_table(HEADERS, [["Aribau 10", "Electricidad", "Endesa", "01/07/2024", "31/07/2024",
                                      "50,00", "10,50", "60,50 €"]])
    assert rows == [{
        "Asset": "Aribau 10",
        "Service": "Electricidad",
        "Initial date": "01/07/2024",
        "Final date": "31/07/2024",
        "Subtotal": "50,00",
        "Taxes": "10,50",
        "Total": "60,50 €",
    }]


def test_rows_without_wanted_cells_are_skipped():
    assert rows_from_table(["Notes"], [["spacer"], ["total"]]) == []


def test_bill_record_from_raw_row():
    record = BillRecord.from_raw_row(
        {"Service": "Agua", "Initial date": "01/07/2024", "Final date": "31/08/2024", "Total": "1.234,56 €"}
    )
    assert record.service == ServiceType.WATER
    assert record.initial_date == date(2024, 7, 1)
    assert record.final_date == date(2024, 8, 31)
    assert record.total_amount == Decimal("1234.56")
    assert record.source_columns["Total"] == "1.234,56 €"


def test_bill_record_tolerates_bad_cells():
    record = BillRecord.from_raw_row({"Service": "Luz", "Final date": "pending", "Total": "n/a"})
    assert record.service == ServiceType.ELECTRICITY
    assert record.initial_date is None
    assert record.final_date is None
    assert record.total_amount == Decimal("0")


@pytest.mark.parametrize(
    "label,expected",
    [
        ("Electricidad", ServiceType.ELECTRICITY),
        ("ENDESA energia", ServiceType.ELECTRICITY),
        ("Agua", ServiceType.WATER),
        ("Water supply", ServiceType.WATER),
        ("Gas Natural", ServiceType.GAS),
        ("Internet", ServiceType.OTHER),
        (None, ServiceType.OTHER),
    ],
)
def test_classify_service(label, expected):
    assert classify_service(label) == expected


def test_records_from_tables_preserves_order():
    tables = [
        {"headers": HEADERS, "rows": [
            ["A", "Agua", "", "01/07/2024", "31/08/2024", "", "", "45,00"],
            ["A", "Electricidad", "", "01/07/2024", "31/07/2024", "", "", "60,50"],
        ]},
        {"headers": ["Service", "Final date", "Total"], "rows": [["Gas", "31/08/2024", "20"]]},
        {"headers": [], "rows": []},
    ]
    records = records_from_tables(tables)
    assert [r.service for r in records] == [ServiceType.WATER, ServiceType.ELECTRICITY, ServiceType.GAS]
    assert records[2].total_amount == Decimal("20")


def test_records_from_no_tables():
    assert records_from_tables([]) == []
    assert records_from_tables(None) == []


def test_bill_identity_for_duplicates(bill):
    a = bill("Electricity", "01/07/2024", "31/07/2024", "25,00")
    b = bill("Electricity", "01/07/2024", "31/07/2024", "25,00")
    assert a.identity == b.identity
    assert a.describe() == "Electricity 2024-07-01..2024-07-31 25.00"


def test_property_accepts_spreadsheet_keys():
    prop = Property.model_validate({"name": "Aribau 10", "rooms": "3", "unitCode": " U-7 "})
    assert prop.room_count == 3
    assert prop.unit_code == "U-7"
    assert Property(name="Llull 2", unit_code="").unit_code is None


def test_property_requires_name():
    with pytest.raises(ValueError):
        Property(name="")
