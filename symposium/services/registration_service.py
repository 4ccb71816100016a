"""
Registration service — all database operations for registrations.

All functions receive an AsyncSession parameter and are intentionally
pure async functions (no class coupling) for easy unit testing. They flush
but never commit: the caller owns the transaction.
"""
from __future__ import annotations

import logging
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.errors import DuplicateRollNumber, NotFound, RegistrationError
from symposium.models.models import ApprovalMethod, Registration
from symposium.validators import normalize_roll_number, validate

logger = logging.getLogger(__name__)

# Fields an administrator may overwrite directly
EDITABLE_FIELDS = (
    "name", "roll_number", "department", "year", "mobile_number",
    "event1", "event2", "team_member2",
)


# ── Reads ─────────────────────────────────────────────────────────────────────

async def list_registrations(session: AsyncSession) -> List[Registration]:
    """Full snapshot, newest first."""
    result = await session.execute(
        select(Registration).order_by(Registration.created_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())


async def get_registration(
    session: AsyncSession,
    registration_id: int,
) -> Optional[Registration]:
    return await session.get(Registration, registration_id)


async def find_by_roll_number(
    session: AsyncSession,
    roll_number: str,
) -> Optional[Registration]:
    result = await session.execute(
        select(Registration).where(
            Registration.roll_number == normalize_roll_number(roll_number)
        )
    )
    return result.scalar_one_or_none()


# ── Writes ────────────────────────────────────────────────────────────────────

async def register(
    session: AsyncSession,
    payload: Mapping[str, Any],
    existing: Optional[Iterable[Any]] = None,
    fee_paid: bool = False,
) -> Tuple[Optional[Registration], List[RegistrationError]]:
    """
    Validate and insert a new registration.

    ``existing`` is the snapshot to check uniqueness against; it is loaded
    from the store when omitted. The snapshot may already be stale: the
    unique index on roll_number is what finally decides, and a losing insert
    comes back as DuplicateRollNumber.

    ``fee_paid`` is only for admin desk entries (cash payment); such
    registrations are tagged ApprovalMethod.MANUAL.

    A rejected insert rolls back the session, expiring every object loaded
    through it.
    """
    if existing is None:
        existing = await list_registrations(session)

    validated, errors = validate(payload, existing)
    if errors:
        return None, errors

    reg = Registration(**validated.columns())
    if fee_paid:
        reg.fee_paid = True
        reg.approval_method = ApprovalMethod.MANUAL

    session.add(reg)
    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        logger.info("Store rejected duplicate roll number %s", validated.roll_number)
        return None, [DuplicateRollNumber(roll_number=validated.roll_number)]

    # created_at is stamped by the database
    await session.refresh(reg)
    logger.info("Registered %s for %s", reg.roll_number, ", ".join(reg.events))
    return reg, []


async def update_registration(
    session: AsyncSession,
    registration_id: int,
    changes: Mapping[str, Any],
) -> Tuple[Optional[Registration], List[RegistrationError]]:
    """
    Overwrite fields of an existing registration (admin edit).

    The merged record goes through the same validator as a new one; its own
    roll number does not count as a duplicate. Payment fields are not
    editable here; the payment service owns them.
    """
    reg = await get_registration(session, registration_id)
    if reg is None:
        return None, [NotFound(registration_id=registration_id)]

    merged = {f: getattr(reg, f) for f in EDITABLE_FIELDS}
    merged.update({k: v for k, v in changes.items() if k in EDITABLE_FIELDS})

    existing = await list_registrations(session)
    validated, errors = validate(merged, existing, exclude_id=registration_id)
    if errors:
        return None, errors

    for name, value in validated.columns().items():
        if name in EDITABLE_FIELDS:
            setattr(reg, name, value)

    try:
        await session.flush()
    except IntegrityError:
        await session.rollback()
        return None, [DuplicateRollNumber(roll_number=validated.roll_number)]
    return reg, []


async def delete_registration(
    session: AsyncSession,
    registration_id: int,
) -> bool:
    """Hard delete. Returns False when the record was already gone."""
    result = await session.execute(
        delete(Registration).where(Registration.id == registration_id)
    )
    return result.rowcount > 0
