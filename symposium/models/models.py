"""
ORM model and fixed catalogues for the symposium registration portal.

Domain overview
---------------
Registration  one participant's entry: identity, department / year,
              one or two events, and the fee / payment-proof status.

The catalogues below (departments, years, events and their time slots)
are fixed for the edition and are not stored in the database.
"""
from __future__ import annotations

from datetime import datetime, time
from typing import Optional, Tuple

from sqlalchemy import Boolean, DateTime, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from symposium.models.base import Base

# ─────────────────────────── Constants ────────────────────────────────────────

class Department:
    CS          = "B.Sc. Computer Science"
    DATA_SCI    = "B.Sc. Data Science"
    BCA         = "BCA"
    BCOM_CS     = "B.Com. CS"
    MATHS       = "B.Sc. Maths"
    BCOM        = "B.Com. General"
    BCOM_CORP   = "B.Com. Corporate Secretaryship"
    ECONOMICS   = "BA Economics"
    BBA         = "BBA"

    ALL = (CS, DATA_SCI, BCA, BCOM_CS, MATHS, BCOM, BCOM_CORP, ECONOMICS, BBA)

    # Only final-year students run in this department
    RESTRICTED = MATHS


class Year:
    FIRST  = "1st Year"
    SECOND = "2nd Year"
    THIRD  = "3rd Year"

    ALL = (FIRST, SECOND, THIRD)

    # Forced year for Department.RESTRICTED
    RESTRICTED = THIRD


class EventName:
    TECH_QUIZ    = "Tech Quiz"
    BUG_BLASTER  = "Bug Blaster"
    PANEL_DEBATE = "Panel Debate"
    WEB_WIZARDS  = "Web Wizards"
    DESIGN_DUEL  = "Design Duel"

    ALL = (TECH_QUIZ, BUG_BLASTER, PANEL_DEBATE, WEB_WIZARDS, DESIGN_DUEL)

    TEAM = (PANEL_DEBATE, WEB_WIZARDS)

    # Scheduled slot per event, "HH:MM-HH:MM"
    TIMES: dict[str, str] = {
        TECH_QUIZ:    "10:15-11:15",
        BUG_BLASTER:  "10:15-11:15",
        PANEL_DEBATE: "11:15-12:15",
        WEB_WIZARDS:  "11:15-12:00",
        DESIGN_DUEL:  "11:15-11:45",
    }

    @classmethod
    def window(cls, name: str) -> Optional[Tuple[time, time]]:
        """Parse the event's slot into (start, end). None for unknown events."""
        raw = cls.TIMES.get(name)
        if raw is None:
            return None
        start_str, end_str = raw.split("-")
        return (
            datetime.strptime(start_str.strip(), "%H:%M").time(),
            datetime.strptime(end_str.strip(), "%H:%M").time(),
        )

    @classmethod
    def overlaps(cls, first: str, second: str) -> bool:
        """
        True when both events have slots and those slots intersect.
        Events starting at the same minute always overlap.
        """
        a = cls.window(first)
        b = cls.window(second)
        if a is None or b is None:
            return False
        if a[0] == b[0]:
            return True
        return a[0] < b[1] and b[0] < a[1]


class PaymentStatus:
    UNPAID          = "unpaid"
    PROOF_SUBMITTED = "proof_submitted"
    APPROVED        = "approved"

    LABELS = {
        UNPAID:          "Unpaid",
        PROOF_SUBMITTED: "Proof submitted",
        APPROVED:        "Approved",
    }


class ApprovalMethod:
    MANUAL         = "manual"          # cash / desk payment, no proof required
    PROOF_REVIEWED = "proof_reviewed"  # admin checked an uploaded proof


# ─────────────────────────── Models ───────────────────────────────────────────

class Registration(Base):
    """A participant's registration for one or two symposium events."""
    __tablename__ = "registrations"

    id:                Mapped[int]           = mapped_column(Integer, primary_key=True, autoincrement=True)
    name:              Mapped[str]           = mapped_column(String(100))
    # Stored uppercased; the unique index makes the store reject a second
    # registration for the same roll number even when two clients race.
    roll_number:       Mapped[str]           = mapped_column(String(50), unique=True, index=True)
    department:        Mapped[str]           = mapped_column(String(60))
    year:              Mapped[str]           = mapped_column(String(20))
    mobile_number:     Mapped[str]           = mapped_column(String(10))
    event1:            Mapped[str]           = mapped_column(String(40))
    event2:            Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    team_member2:      Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    fee_paid:          Mapped[bool]          = mapped_column(Boolean, default=False)
    payment_proof_ref: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    approval_method:   Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    # Set when an admin turns a pending proof down; the proof itself is kept
    proof_rejected_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at:        Mapped[datetime]      = mapped_column(DateTime, server_default=func.now())

    @property
    def events(self) -> list[str]:
        return [e for e in (self.event1, self.event2) if e]

    @property
    def payment_status(self) -> str:
        if self.fee_paid:
            return PaymentStatus.APPROVED
        if self.payment_proof_ref and self.proof_rejected_at is None:
            return PaymentStatus.PROOF_SUBMITTED
        return PaymentStatus.UNPAID

    def to_dict(self) -> dict:
        return {
            "id":                self.id,
            "name":              self.name,
            "roll_number":       self.roll_number,
            "department":        self.department,
            "year":              self.year,
            "mobile_number":     self.mobile_number,
            "event1":            self.event1,
            "event2":            self.event2,
            "team_member2":      self.team_member2,
            "fee_paid":          self.fee_paid,
            "payment_proof_ref": self.payment_proof_ref,
            "approval_method":   self.approval_method,
            "proof_rejected_at": self.proof_rejected_at,
            "payment_status":    self.payment_status,
            "created_at":        self.created_at,
        }
