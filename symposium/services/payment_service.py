"""
Payment service — lifecycle of a registration's fee status.

States (derived from the record, see Registration.payment_status):

    unpaid ──submit_proof──▶ proof_submitted ──approve──▶ approved
      ▲                           │                          │
      └──────────reject───────────┴──────────reject──────────┘

A rejected proof stays on the record for audit but no longer counts:
``proof_rejected_at`` is stamped and the status reads ``unpaid`` until the
participant uploads a new proof.

An admin may also approve straight from ``unpaid`` (cash at the desk);
those approvals are tagged ApprovalMethod.MANUAL, approvals of an uploaded
proof are tagged ApprovalMethod.PROOF_REVIEWED.

Every transition is a single-row update inside the caller's transaction.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from symposium.config import settings
from symposium.errors import (
    FileTooLarge,
    NetworkFailure,
    NotFound,
    ProofAlreadyVerified,
    RegistrationError,
    UnsupportedFileType,
)
from symposium.models.models import ApprovalMethod, PaymentStatus, Registration
from symposium.services.access_service import AccessLevel, require_write
from symposium.services.blob_store import BlobStore, BlobStoreError, ProgressCallback
from symposium.services.registration_service import find_by_roll_number, get_registration

logger = logging.getLogger(__name__)

ALLOWED_PROOF_TYPES = ("image/jpeg", "image/jpg", "image/png", "image/webp")

_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/jpg":  "jpg",
    "image/png":  "png",
    "image/webp": "webp",
}

PROOF_FOLDER = "payment_proofs"


@dataclass(frozen=True)
class ProofUpload:
    """An image selected by the participant, as received from the form."""
    filename:     str
    content_type: str
    data:         bytes

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        # From the checked content type only; the client filename is never trusted
        return _EXTENSIONS.get(self.content_type, "bin")


def check_upload(upload: ProofUpload, max_bytes: Optional[int] = None) -> Optional[RegistrationError]:
    """Size and type gate applied before anything is uploaded."""
    limit = settings.MAX_PROOF_BYTES if max_bytes is None else max_bytes
    if upload.size > limit:
        return FileTooLarge(size=upload.size, limit=limit)
    if upload.content_type not in ALLOWED_PROOF_TYPES:
        return UnsupportedFileType(content_type=upload.content_type)
    return None


def proof_path(roll_number: str, upload: ProofUpload, now_ms: Optional[int] = None) -> str:
    """payment_proofs/<ROLL>_<unix-ms>.<ext>"""
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    safe_roll = "".join(c for c in roll_number if c.isalnum()) or "UNKNOWN"
    return f"{PROOF_FOLDER}/{safe_roll}_{now_ms}.{upload.extension}"


# ── Participant side ──────────────────────────────────────────────────────────

async def find_for_payment(
    session: AsyncSession,
    roll_number: str,
) -> Tuple[Optional[Registration], Optional[RegistrationError]]:
    """The 'verify your roll number' step of the pay-online page."""
    reg = await find_by_roll_number(session, roll_number)
    if reg is None:
        return None, NotFound(roll_number=roll_number.strip().upper())
    return reg, None


async def submit_proof(
    session: AsyncSession,
    blob_store: BlobStore,
    registration_id: int,
    upload: ProofUpload,
    on_progress: Optional[ProgressCallback] = None,
    max_bytes: Optional[int] = None,
) -> Tuple[Optional[Registration], Optional[RegistrationError]]:
    """
    Store the proof image and stamp its reference on the registration.

    Either the reference is set after a confirmed upload, or the
    registration stays exactly as it was. fee_paid is never touched here.
    """
    error = check_upload(upload, max_bytes)
    if error:
        return None, error

    reg = await get_registration(session, registration_id)
    if reg is None:
        return None, NotFound(registration_id=registration_id)
    if reg.fee_paid:
        return None, ProofAlreadyVerified(registration_id=registration_id)

    path = proof_path(reg.roll_number, upload)
    try:
        ref = await blob_store.put(path, upload.data, upload.content_type, on_progress)
    except BlobStoreError as e:
        logger.warning("Proof upload for %s failed: %s", reg.roll_number, e)
        return None, NetworkFailure(reason=str(e))

    reg.payment_proof_ref = ref
    reg.proof_rejected_at = None
    try:
        await session.flush()
    except SQLAlchemyError as e:
        logger.warning(
            "Could not record proof for %s; orphaned blob %s left in storage",
            reg.roll_number, ref,
        )
        await session.rollback()
        return None, NetworkFailure(reason=str(e))

    logger.info("Payment proof submitted for %s", reg.roll_number)
    return reg, None


# ── Admin side ────────────────────────────────────────────────────────────────

async def approve(
    session: AsyncSession,
    registration_id: int,
    access: Optional[AccessLevel],
) -> Tuple[Optional[Registration], Optional[RegistrationError]]:
    """Mark the fee as paid. Approving an approved registration is a no-op."""
    denied = require_write(access, "approve payments")
    if denied:
        return None, denied

    reg = await get_registration(session, registration_id)
    if reg is None:
        return None, NotFound(registration_id=registration_id)
    if reg.fee_paid:
        return reg, None

    reg.approval_method = (
        ApprovalMethod.PROOF_REVIEWED
        if reg.payment_status == PaymentStatus.PROOF_SUBMITTED
        else ApprovalMethod.MANUAL
    )
    reg.fee_paid = True
    await session.flush()
    logger.info("Approved payment for %s (%s)", reg.roll_number, reg.approval_method)
    return reg, None


async def reject(
    session: AsyncSession,
    registration_id: int,
    access: Optional[AccessLevel],
) -> Tuple[Optional[Registration], Optional[RegistrationError]]:
    """
    Send the registration back to unpaid, from either a pending proof or an
    approval. The proof reference is kept but marked rejected, so it leaves
    the review queue until a new proof is uploaded. No-op when unpaid.
    """
    denied = require_write(access, "modify payments")
    if denied:
        return None, denied

    reg = await get_registration(session, registration_id)
    if reg is None:
        return None, NotFound(registration_id=registration_id)
    if reg.payment_status == PaymentStatus.UNPAID:
        return reg, None

    reg.fee_paid = False
    reg.approval_method = None
    if reg.payment_proof_ref and reg.proof_rejected_at is None:
        # naive UTC, same as the database-stamped created_at
        reg.proof_rejected_at = datetime.now(timezone.utc).replace(tzinfo=None)
    await session.flush()
    logger.info("Rejected payment for %s; back to unpaid", reg.roll_number)
    return reg, None


async def set_fee_status(
    session: AsyncSession,
    registration_id: int,
    paid: bool,
    access: Optional[AccessLevel],
) -> Tuple[Optional[Registration], Optional[RegistrationError]]:
    if paid:
        return await approve(session, registration_id, access)
    return await reject(session, registration_id, access)


def list_payments(records: Iterable[Registration], status: str = "pending") -> List[Registration]:
    """
    Proof review queue. ``pending`` = proof uploaded, not yet paid;
    ``approved`` = proof uploaded and paid; ``rejected`` = last proof turned
    down, waiting for a new upload.
    """
    with_proof = [r for r in records if r.payment_proof_ref]
    if status == "approved":
        return [r for r in with_proof if r.payment_status == PaymentStatus.APPROVED]
    if status == "rejected":
        return [
            r for r in with_proof
            if r.proof_rejected_at is not None and r.payment_status == PaymentStatus.UNPAID
        ]
    return [r for r in with_proof if r.payment_status == PaymentStatus.PROOF_SUBMITTED]
