"""Pydantic request bodies."""

from datetime import date
from typing import Literal

from pydantic import BaseModel, Field


class VacationRequestCreate(BaseModel):
    """New vacation request submitted by an employee."""

    user_name: str
    user_email: str
    company: str
    start_date: date
    end_date: date | None = None
    type: str | None = None  # any label, normalized on save
    is_half_day: bool = False
    half_day_type: Literal["morning", "afternoon"] | None = None
    duration_days: float | None = Field(default=None, gt=0)
    reason: str | None = None


class VacationRequestUpdate(BaseModel):
    """
    Partial update: a review decision and/or edited fields.

    Only the fields that are set are applied.
    """

    status: str | None = None
    reviewed_by: str | None = None
    reviewer_email: str | None = None
    admin_comment: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    type: str | None = None
    is_half_day: bool | None = None
    half_day_type: Literal["morning", "afternoon"] | None = None
    duration_days: float | None = Field(default=None, gt=0)
    reason: str | None = None

    def changes(self) -> dict:
        """Set fields as plain values (dates as ISO strings)."""
        values = self.model_dump(exclude_unset=True, exclude_none=True)
        for key in ("start_date", "end_date"):
            if key in values:
                values[key] = values[key].isoformat()
        return values


class MonthlySummaryRequest(BaseModel):
    month: str | None = Field(default=None, pattern=r"^\d{4}-(0[1-9]|1[0-2])$")
