"""
Registration validator — Pydantic v2 model plus the admission check.

``RegistrationData`` covers everything that can be decided from the payload
alone (field formats, catalogue membership, the optional second event).
``validate`` adds the roll-number uniqueness check against the current
snapshot of registrations and translates failures into the error taxonomy
from ``symposium.errors`` so callers never see a raw pydantic exception.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, List, Mapping, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator
from pydantic.alias_generators import to_camel

from symposium.errors import (
    CrossFieldConflict,
    DuplicateRollNumber,
    InvalidField,
    RegistrationError,
)
from symposium.models.models import Department, EventName, Year

_MOBILE_RE = re.compile(r"[0-9]{10}")


def normalize_roll_number(roll_number: str) -> str:
    """Trim and uppercase; "22ucs01 " → "22UCS01"."""
    return roll_number.strip().upper()


class RegistrationData(BaseModel):
    """
    Registration payload validated before it is written to the store.

    Accepts both snake_case and the camelCase keys sent by the web form
    (``rollNumber``, ``mobileNumber``, ``addEvent2`` ...).

    Attributes
    ----------
    name          : Participant name (2–100 chars)
    roll_number   : College roll number (3–50 chars), uppercased
    department    : One of Department.ALL
    year          : One of Year.ALL; forced for Department.RESTRICTED
    mobile_number : Exactly 10 digits
    event1        : One of EventName.ALL
    add_event2    : Whether a second event is requested
    event2        : Optional second event
    team_member2  : Partner name, kept only for team events
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name:          str
    roll_number:   str
    department:    str
    year:          str
    mobile_number: str
    event1:        str
    add_event2:    bool = False
    event2:        Optional[str] = None
    team_member2:  Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def force_restricted_year(cls, data: Any) -> Any:
        # The restricted department only admits one year: coerce silently.
        if isinstance(data, Mapping):
            if data.get("department") == Department.RESTRICTED:
                data = dict(data)
                data.pop("year", None)
                data["year"] = Year.RESTRICTED
        return data

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 2:
            raise ValueError("Name must be at least 2 characters.")
        if len(v) > 100:
            raise ValueError("Name cannot exceed 100 characters.")
        return v

    @field_validator("roll_number")
    @classmethod
    def validate_roll_number(cls, v: str) -> str:
        v = normalize_roll_number(v)
        if len(v) < 3:
            raise ValueError("Please enter a valid roll number.")
        if len(v) > 50:
            raise ValueError("Roll number cannot exceed 50 characters.")
        return v

    @field_validator("department")
    @classmethod
    def validate_department(cls, v: str) -> str:
        if v not in Department.ALL:
            raise ValueError("Please select a department.")
        return v

    @field_validator("year")
    @classmethod
    def validate_year(cls, v: str) -> str:
        if v not in Year.ALL:
            raise ValueError("Please select your year.")
        return v

    @field_validator("mobile_number")
    @classmethod
    def validate_mobile_number(cls, v: str) -> str:
        v = v.strip()
        if not _MOBILE_RE.fullmatch(v):
            raise ValueError("Please enter a valid 10-digit mobile number.")
        return v

    @field_validator("event1")
    @classmethod
    def validate_event1(cls, v: str) -> str:
        if v not in EventName.ALL:
            raise ValueError("Please select an event.")
        return v

    @field_validator("event2")
    @classmethod
    def validate_event2(cls, v: Optional[str]) -> Optional[str]:
        if v is None or not v.strip():
            return None
        if v not in EventName.ALL:
            raise ValueError("Please select a valid second event.")
        return v

    @field_validator("team_member2")
    @classmethod
    def validate_team_member2(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def check_second_event(self) -> "RegistrationData":
        if self.add_event2 or self.event2 is not None:
            if self.event2 is None:
                raise ValueError("Please select a second event.")
            if self.event2 == self.event1:
                raise ValueError("You cannot select the same event twice.")
            if EventName.overlaps(self.event1, self.event2):
                raise ValueError(
                    "You cannot select two events in the same time slot."
                )
            self.add_event2 = True

        if not any(e in EventName.TEAM for e in (self.event1, self.event2)):
            self.team_member2 = None
        return self


@dataclass(frozen=True)
class ValidatedRegistration:
    """Normalized record ready for persistence. ``created_at`` is stamped by the store."""
    name:          str
    roll_number:   str
    department:    str
    year:          str
    mobile_number: str
    event1:        str
    event2:        Optional[str] = None
    team_member2:  Optional[str] = None
    fee_paid:      bool = False
    created_at:    Optional[datetime] = field(default=None, compare=False)

    @classmethod
    def from_data(cls, data: RegistrationData) -> "ValidatedRegistration":
        return cls(
            name=data.name,
            roll_number=data.roll_number,
            department=data.department,
            year=data.year,
            mobile_number=data.mobile_number,
            event1=data.event1,
            event2=data.event2,
            team_member2=data.team_member2,
        )

    def columns(self) -> dict:
        """Column values for ``Registration(**...)``; created_at left to the store."""
        return {
            "name":          self.name,
            "roll_number":   self.roll_number,
            "department":    self.department,
            "year":          self.year,
            "mobile_number": self.mobile_number,
            "event1":        self.event1,
            "event2":        self.event2,
            "team_member2":  self.team_member2,
            "fee_paid":      self.fee_paid,
        }


# ─────────────────────────── Admission check ──────────────────────────────────

_FIELD_BY_ALIAS = {to_camel(name): name for name in RegistrationData.model_fields}


def _translate(exc: ValidationError) -> List[RegistrationError]:
    """Map pydantic errors to InvalidField / CrossFieldConflict."""
    errors: List[RegistrationError] = []
    for err in exc.errors():
        reason = err["msg"]
        if reason.startswith("Value error, "):
            reason = reason[len("Value error, "):]
        loc = err.get("loc") or ()
        if not loc:
            errors.append(CrossFieldConflict(reason=reason, field="event2"))
            continue
        name = _FIELD_BY_ALIAS.get(str(loc[0]), str(loc[0]))
        if err["type"] == "missing":
            reason = "This field is required."
        errors.append(InvalidField(field=name, reason=reason))
    return errors


def _record_value(record: Any, key: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(key, record.get(to_camel(key)))
    return getattr(record, key, None)


def find_duplicate(
    roll_number: str,
    existing_records: Iterable[Any],
    exclude_id: Optional[int] = None,
) -> Optional[Any]:
    """Return the record whose roll number matches case-insensitively, if any."""
    wanted = normalize_roll_number(roll_number)
    for record in existing_records:
        if exclude_id is not None and _record_value(record, "id") == exclude_id:
            continue
        existing = _record_value(record, "roll_number")
        if existing and normalize_roll_number(existing) == wanted:
            return record
    return None


def validate(
    candidate: Union[Mapping[str, Any], RegistrationData],
    existing_records: Iterable[Any],
    exclude_id: Optional[int] = None,
) -> Tuple[Optional[ValidatedRegistration], List[RegistrationError]]:
    """
    Decide whether ``candidate`` may be admitted.

    Returns (validated, []) on success, or (None, errors) where errors lists
    every offending field. The uniqueness check only runs once the payload
    itself is valid. ``exclude_id`` skips one record (used when editing).
    """
    if isinstance(candidate, RegistrationData):
        data = candidate
    else:
        try:
            data = RegistrationData.model_validate(candidate)
        except ValidationError as exc:
            return None, _translate(exc)

    if find_duplicate(data.roll_number, existing_records, exclude_id) is not None:
        return None, [DuplicateRollNumber(roll_number=data.roll_number)]

    return ValidatedRegistration.from_data(data), []
