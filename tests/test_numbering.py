"""Pure helpers: numbering, completion percentage, payload validation."""
from datetime import datetime
from types import SimpleNamespace

import pytest

from app.batchflow.errors import ValidationError
from app.batchflow.modules.batch_records.service import (
    build_batch_number,
    compute_completion_percentage,
    product_prefix,
)
from app.batchflow.modules.work_orders.service import (
    clean_work_order_payload,
    format_work_order_number,
    number_suffix,
)
from app.batchflow.utils import parse_datetime


def test_format_work_order_number_pads_to_three_digits():
    assert format_work_order_number(2024, 1) == "WO-2024-001"
    assert format_work_order_number(2024, 42) == "WO-2024-042"
    assert format_work_order_number(2025, 1234) == "WO-2025-1234"


@pytest.mark.parametrize(
    "number,expected",
    [
        ("WO-2024-001", 1),
        ("WO-2024-019", 19),
        ("WO-2024-ABC", 0),
        ("WO-2024", 0),
        ("", 0),
    ],
)
def test_number_suffix(number, expected):
    assert number_suffix(number) == expected


def test_product_prefix_uses_first_word():
    assert product_prefix("Hydrating Moisturizer") == "HY"
    assert product_prefix("vitamin C Serum") == "VI"
    assert product_prefix("SPF 50 Sunscreen") == "SP"
    assert product_prefix("X") == "X"


def test_build_batch_number_example():
    number = build_batch_number(
        product_name="Hydrating Moisturizer",
        year=2024,
        work_order_number="WO-2024-001",
        batch_size=500,
    )
    assert number == "HY-24-001-500"


def test_build_batch_number_two_digit_year():
    number = build_batch_number(
        product_name="Clay Face Mask",
        year=2005,
        work_order_number="WO-2005-017",
        batch_size=1200,
    )
    assert number == "CL-05-017-1200"


def _steps(done, total):
    return [SimpleNamespace(completed_at=datetime(2024, 1, 1) if i < done else None) for i in range(total)]


@pytest.mark.parametrize(
    "done,total,expected",
    [
        (0, 0, 0),
        (0, 6, 0),
        (1, 6, 16),
        (2, 6, 33),
        (5, 6, 83),
        (6, 6, 100),
        (1, 3, 33),
        (2, 3, 66),
    ],
)
def test_completion_percentage_floors(done, total, expected):
    assert compute_completion_percentage(_steps(done, total)) == expected


def test_clean_work_order_payload_defaults_status_to_planned():
    data = clean_work_order_payload(
        {"productId": 1, "batchSize": 500, "assignedOperatorId": 2, "startDate": "2024-01-01"}
    )
    assert data["status"] == "planned"
    assert data["start_date"] == datetime(2024, 1, 1)
    assert data["end_date"] is None


def test_clean_work_order_payload_reports_every_bad_field():
    with pytest.raises(ValidationError) as exc:
        clean_work_order_payload({"productId": "abc", "batchSize": 0, "status": "shipped"})
    fields = {e["field"] for e in exc.value.errors}
    assert fields == {"productId", "batchSize", "assignedOperatorId", "startDate", "status"}
    assert exc.value.message == "Invalid work order data"


def test_clean_work_order_payload_rejects_bool_and_fractional_ints():
    with pytest.raises(ValidationError) as exc:
        clean_work_order_payload(
            {"productId": True, "batchSize": 2.5, "assignedOperatorId": 2, "startDate": "2024-01-01"}
        )
    assert {e["field"] for e in exc.value.errors} == {"productId", "batchSize"}


def test_parse_datetime_normalizes_to_naive_utc():
    assert parse_datetime("2024-03-01T10:00:00Z") == datetime(2024, 3, 1, 10, 0, 0)
    assert parse_datetime("2024-03-01T12:00:00+02:00") == datetime(2024, 3, 1, 10, 0, 0)
    assert parse_datetime(None) is None
    assert parse_datetime("") is None
    with pytest.raises(ValueError):
        parse_datetime("yesterday")
    with pytest.raises(ValueError):
        parse_datetime(12)
