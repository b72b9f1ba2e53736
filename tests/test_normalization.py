"""Tests for status and type normalization."""

import pytest

from core.normalization import is_approved, normalize_fields, normalize_status, normalize_type
from models.vacations import VacationStatus, VacationType


@pytest.mark.parametrize("raw", ["approved", "APPROVED", " Approve ", "ok", "accepted", "Validated"])
def test_approved_synonyms(raw):
    assert normalize_status(raw) is VacationStatus.APPROVED


@pytest.mark.parametrize("raw", ["denied", "REJECT", "rejected", "Declined"])
def test_denied_synonyms(raw):
    assert normalize_status(raw) is VacationStatus.DENIED


@pytest.mark.parametrize("raw", ["pending", "waiting", "Submitted", "", None, "on hold", 42])
def test_everything_else_is_pending(raw):
    assert normalize_status(raw) is VacationStatus.PENDING


def test_enum_input_round_trips():
    assert normalize_status(VacationStatus.DENIED) is VacationStatus.DENIED
    assert normalize_type(VacationType.SICK_LEAVE) is VacationType.SICK_LEAVE


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("PAID_LEAVE", VacationType.PAID_VACATION),
        ("paid-vacation", VacationType.PAID_VACATION),
        ("Vacation", VacationType.PAID_VACATION),
        ("unpaid", VacationType.UNPAID_LEAVE),
        ("Unpaid Vacation", VacationType.UNPAID_LEAVE),
        ("sick-leave", VacationType.SICK_LEAVE),
        ("illness", VacationType.SICK_LEAVE),
        ("Full day", VacationType.OTHER),
        (None, VacationType.OTHER),
        ("", VacationType.OTHER),
    ],
)
def test_type_synonyms(raw, expected):
    assert normalize_type(raw) is expected


def test_normalize_fields_only_touches_present_keys():
    assert normalize_fields({"status": "validated"}) == {"status": "Approved"}
    assert normalize_fields({"type": "sick"}) == {"type": "Sick Leave"}
    assert normalize_fields({"status": None, "reason": "x"}) == {}


def test_is_approved():
    assert is_approved("OK")
    assert not is_approved("pending")
