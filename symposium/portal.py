"""
Portal facade — the operations the web front-end calls.

Each call opens its own unit of work (see ``session_scope``), delegates to
the services and returns plain dicts:

    {"ok": True, ...}                       on success
    {"ok": False, "error": {...}}           on a single failure
    {"ok": False, "errors": [{...}, ...]}   on form validation failures

After every committed change the full registration snapshot is pushed to
the live feed so open dashboards refresh.
"""
from __future__ import annotations

import functools
import logging
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from symposium.config import settings
from symposium.errors import NetworkFailure, NotFound, RegistrationError
from symposium.models.base import AsyncSessionFactory, session_scope
from symposium.services import payment_service, registration_service
from symposium.services.access_service import AccessLevel, require_write
from symposium.services.blob_store import BlobStore, LocalBlobStore, ProgressCallback
from symposium.services.live_feed import RegistrationFeed, SnapshotCallback
from symposium.services.payment_service import ProofUpload
from symposium.services.qr_service import generate_qr_png, upi_payment_uri
from symposium.services.roster_service import (
    RosterFilter,
    RosterStats,
    SortSpec,
    aggregate,
    export_delimited,
    export_filename,
    query_roster,
)

logger = logging.getLogger(__name__)


def _fail(error: RegistrationError) -> Dict[str, Any]:
    return {"ok": False, "error": error.as_dict()}


def _fail_many(errors: Iterable[RegistrationError]) -> Dict[str, Any]:
    return {"ok": False, "errors": [e.as_dict() for e in errors]}


def _store_guard(action: str) -> Callable:
    """Turn an unexpected store failure into a retryable NetworkFailure result."""
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(self: "Portal", *args: Any, **kwargs: Any) -> Dict[str, Any]:
            try:
                return await func(self, *args, **kwargs)
            except SQLAlchemyError as e:
                logger.exception("Store failure during %s", action)
                return _fail(NetworkFailure(reason=str(e)))
        return wrapper
    return decorator


class Portal:
    """
    Registration & payment workflow engine, wired to a store and a blob store.

    Parameters
    ----------
    session_factory : async_sessionmaker bound to the registrations database
    blob_store      : where payment proofs go (defaults to settings.BLOB_DIR)
    feed            : live roster feed shared with dashboards
    fee             : registration fee override for statistics
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] = AsyncSessionFactory,
        blob_store: Optional[BlobStore] = None,
        feed: Optional[RegistrationFeed] = None,
        fee: Optional[int] = None,
    ) -> None:
        self._factory = session_factory
        self.blob_store = blob_store or LocalBlobStore(settings.BLOB_DIR)
        self.feed = feed or RegistrationFeed()
        self._fee = settings.REGISTRATION_FEE if fee is None else fee

    # ── Snapshot / live feed ──────────────────────────────────────────────────

    async def snapshot(self) -> List[Dict[str, Any]]:
        """Current registration set, newest first, as plain dicts."""
        async with session_scope(self._factory) as session:
            records = await registration_service.list_registrations(session)
            return [r.to_dict() for r in records]

    def subscribe(self, callback: SnapshotCallback) -> Callable[[], None]:
        return self.feed.subscribe(callback)

    async def _publish(self) -> None:
        try:
            await self.feed.publish(await self.snapshot())
        except SQLAlchemyError:
            # The change itself is committed; dashboards catch up on the next one
            logger.exception("Could not load snapshot for the live feed")

    # ── Registration ──────────────────────────────────────────────────────────

    @_store_guard("registration")
    async def submit_registration(self, payload: Mapping[str, Any]) -> Dict[str, Any]:
        """Public registration form."""
        async with session_scope(self._factory) as session:
            reg, errors = await registration_service.register(session, payload)
            if errors:
                return _fail_many(errors)
            new_id = reg.id
        await self._publish()
        return {"ok": True, "id": new_id}

    @_store_guard("manual registration")
    async def add_registration(
        self,
        payload: Mapping[str, Any],
        access: Optional[AccessLevel],
        fee_paid: bool = False,
    ) -> Dict[str, Any]:
        """Admin desk entry; ``fee_paid`` records a cash payment."""
        denied = require_write(access, "add registrations")
        if denied:
            return _fail(denied)

        async with session_scope(self._factory) as session:
            reg, errors = await registration_service.register(session, payload, fee_paid=fee_paid)
            if errors:
                return _fail_many(errors)
            new_id = reg.id
        await self._publish()
        return {"ok": True, "id": new_id}

    @_store_guard("registration edit")
    async def update_registration(
        self,
        registration_id: int,
        changes: Mapping[str, Any],
        access: Optional[AccessLevel],
    ) -> Dict[str, Any]:
        denied = require_write(access, "edit registrations")
        if denied:
            return _fail(denied)

        async with session_scope(self._factory) as session:
            reg, errors = await registration_service.update_registration(
                session, registration_id, changes
            )
            if errors:
                return _fail_many(errors)
            record = reg.to_dict()
        await self._publish()
        return {"ok": True, "registration": record}

    @_store_guard("deletion")
    async def delete_registration(
        self,
        registration_id: int,
        access: Optional[AccessLevel],
    ) -> Dict[str, Any]:
        denied = require_write(access, "delete registrations")
        if denied:
            return _fail(denied)

        async with session_scope(self._factory) as session:
            deleted = await registration_service.delete_registration(session, registration_id)
        if not deleted:
            return _fail(NotFound(registration_id=registration_id))
        await self._publish()
        return {"ok": True}

    async def delete_many(
        self,
        registration_ids: Sequence[int],
        access: Optional[AccessLevel],
    ) -> Dict[str, Any]:
        """
        Bulk delete as independent single deletes. Whatever fails is listed
        in ``failed``; the ones already removed stay removed.
        """
        denied = require_write(access, "delete registrations")
        if denied:
            return {"succeeded": [], "failed": list(registration_ids), "error": denied.as_dict()}

        succeeded: List[int] = []
        failed: List[int] = []
        for rid in registration_ids:
            try:
                async with session_scope(self._factory) as session:
                    deleted = await registration_service.delete_registration(session, rid)
            except SQLAlchemyError:
                logger.exception("Bulk delete: registration %s could not be removed", rid)
                deleted = False
            (succeeded if deleted else failed).append(rid)

        if failed:
            logger.warning("Bulk delete: %d of %d failed: %s", len(failed), len(registration_ids), failed)
        if succeeded:
            await self._publish()
        return {"succeeded": succeeded, "failed": failed}

    # ── Payment ───────────────────────────────────────────────────────────────

    @_store_guard("roll number lookup")
    async def verify_roll_number(self, roll_number: str) -> Dict[str, Any]:
        """Pay-online step 1: find the registration a proof will belong to."""
        async with session_scope(self._factory) as session:
            reg, error = await payment_service.find_for_payment(session, roll_number)
            if error:
                return _fail(error)
            return {
                "ok": True,
                "registration": reg.to_dict(),
                "payment_status": reg.payment_status,
            }

    @_store_guard("proof upload")
    async def upload_payment_proof(
        self,
        registration_id: int,
        upload: ProofUpload,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Dict[str, Any]:
        ref: Optional[str] = None
        try:
            async with session_scope(self._factory) as session:
                reg, error = await payment_service.submit_proof(
                    session, self.blob_store, registration_id, upload, on_progress
                )
                if error:
                    return _fail(error)
                ref = reg.payment_proof_ref
        except SQLAlchemyError as e:
            if ref is not None:
                logger.warning(
                    "Commit failed for proof of registration %s; orphaned blob %s left in storage",
                    registration_id, ref,
                )
            else:
                logger.exception("Store failure during proof upload")
            return _fail(NetworkFailure(reason=str(e)))
        await self._publish()
        return {"ok": True, "ref": ref}

    @_store_guard("fee status update")
    async def set_fee_status(
        self,
        registration_id: int,
        paid: bool,
        access: Optional[AccessLevel],
    ) -> Dict[str, Any]:
        async with session_scope(self._factory) as session:
            reg, error = await payment_service.set_fee_status(
                session, registration_id, paid, access
            )
            if error:
                return _fail(error)
            result = {
                "ok": True,
                "fee_paid": reg.fee_paid,
                "payment_status": reg.payment_status,
                "approval_method": reg.approval_method,
            }
        await self._publish()
        return result

    @_store_guard("payment QR")
    async def payment_qr(self, registration_id: int) -> Dict[str, Any]:
        async with session_scope(self._factory) as session:
            reg = await registration_service.get_registration(session, registration_id)
            if reg is None:
                return _fail(NotFound(registration_id=registration_id))
            roll_number = reg.roll_number
        uri = upi_payment_uri(roll_number, amount=self._fee)
        return {"ok": True, "content_type": "image/png", "content": generate_qr_png(uri), "uri": uri}

    # ── Dashboard views ───────────────────────────────────────────────────────

    async def query_roster(
        self,
        spec: Optional[RosterFilter] = None,
        sort: Optional[SortSpec] = None,
    ) -> List[Dict[str, Any]]:
        return query_roster(await self.snapshot(), spec, sort)

    async def roster_stats(self) -> RosterStats:
        return aggregate(await self.snapshot(), self._fee)

    async def export_csv(
        self,
        spec: Optional[RosterFilter] = None,
        sort: Optional[SortSpec] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        """CSV of exactly the rows the dashboard shows for this filter and sort."""
        spec = spec or RosterFilter()
        rows = await self.query_roster(spec, sort)
        return {
            "filename": export_filename(spec.event, today),
            "content_type": "text/csv",
            "content": export_delimited(rows),
            "rows": len(rows),
        }
