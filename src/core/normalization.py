"""
Status and type normalization.

Single ingestion boundary turning free-form, historically inconsistent
labels ("APPROVED", "validated", "PAID_LEAVE") into canonical enums.
"""

from enum import Enum

from models.vacations import VacationStatus, VacationType

APPROVED_STATUSES = {"approved", "approve", "ok", "accepted", "validated"}
DENIED_STATUSES = {"denied", "reject", "rejected", "declined"}
PENDING_STATUSES = {"pending", "waiting", "submitted"}

PAID_VACATION_TYPES = {
    "paid_leave", "paid leave", "paidvacation", "paid-vacation",
    "paid", "vacation", "paid_vacation", "paid vacation",
}
UNPAID_LEAVE_TYPES = {
    "unpaid_leave", "unpaid leave", "unpaidleave", "unpaid-leave",
    "unpaid", "unpaid_vacation", "unpaid vacation",
}
SICK_LEAVE_TYPES = {"sick_leave", "sick leave", "sickleave", "sick-leave", "sick", "illness"}


def _clean(raw) -> str:
    if raw is None:
        return ""
    if isinstance(raw, Enum):
        raw = raw.value
    return str(raw).strip().lower()


def normalize_status(raw) -> VacationStatus:
    """Map any status string to Pending, Approved or Denied (default Pending)."""
    value = _clean(raw)
    if value in APPROVED_STATUSES:
        return VacationStatus.APPROVED
    if value in DENIED_STATUSES:
        return VacationStatus.DENIED
    if value in PENDING_STATUSES:
        return VacationStatus.PENDING
    # Unknown labels are soft-defaulted, never rejected
    return VacationStatus.PENDING


def normalize_type(raw) -> VacationType:
    """Map any type string to a canonical type (default Other)."""
    value = _clean(raw)
    if value in PAID_VACATION_TYPES:
        return VacationType.PAID_VACATION
    if value in UNPAID_LEAVE_TYPES:
        return VacationType.UNPAID_LEAVE
    if value in SICK_LEAVE_TYPES:
        return VacationType.SICK_LEAVE
    return VacationType.OTHER


def normalize_fields(fields: dict) -> dict:
    """
    Normalize the status and type keys of a field dict.

    Keys that are absent (or None) are left out of the result so partial
    updates do not overwrite stored values.
    """
    normalized = {}
    if fields.get("status") is not None:
        normalized["status"] = normalize_status(fields["status"]).value
    if fields.get("type") is not None:
        normalized["type"] = normalize_type(fields["type"]).value
    return normalized


def is_approved(raw) -> bool:
    return normalize_status(raw) is VacationStatus.APPROVED
