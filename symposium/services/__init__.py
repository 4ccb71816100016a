from symposium.services.registration_service import (
    list_registrations, get_registration, find_by_roll_number,
    register, update_registration, delete_registration,
)
from symposium.services.payment_service import (
    ProofUpload, check_upload, proof_path,
    find_for_payment, submit_proof, approve, reject, set_fee_status, list_payments,
)
from symposium.services.roster_service import (
    RosterFilter, SortSpec, RosterStats, EventStat,
    filter_records, sort_records, query_roster, aggregate,
    export_delimited, export_filename,
)
from symposium.services.access_service import (
    AccessLevel, resolve_access_level, can_write, require_write,
)
from symposium.services.blob_store import (
    BlobStore, BlobStoreError, LocalBlobStore, InlineBlobStore,
)
from symposium.services.live_feed import RegistrationFeed, LiveRoster
from symposium.services.qr_service import upi_payment_uri, generate_qr_png

__all__ = [
    # registration CRUD
    "list_registrations", "get_registration", "find_by_roll_number",
    "register", "update_registration", "delete_registration",
    # payment
    "ProofUpload", "check_upload", "proof_path",
    "find_for_payment", "submit_proof", "approve", "reject", "set_fee_status",
    "list_payments",
    # roster
    "RosterFilter", "SortSpec", "RosterStats", "EventStat",
    "filter_records", "sort_records", "query_roster", "aggregate",
    "export_delimited", "export_filename",
    # access
    "AccessLevel", "resolve_access_level", "can_write", "require_write",
    # storage
    "BlobStore", "BlobStoreError", "LocalBlobStore", "InlineBlobStore",
    # live feed
    "RegistrationFeed", "LiveRoster",
    # qr
    "upi_payment_uri", "generate_qr_png",
]
