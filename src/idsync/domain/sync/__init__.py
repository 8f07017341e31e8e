"""Reconciliation and rules engine."""

from __future__ import annotations

from .attribute_flow import AttributeFlowProcessor, is_reference_mapping, merge_mappings
from .cancellation import CancellationSignal
from .deletion import (
    clear_pending_disconnect,
    delete_eligible_metaverse_objects,
    is_eligible_for_deletion,
    record_connector_disconnected,
)
from .errors import (
    AmbiguousMatchError,
    AmbiguousReferenceError,
    DuplicateConnectedSystemObjectError,
    DuplicateImportedAttributesError,
    InvalidAttributeValueError,
    JoinConflictError,
    MissingExternalIdError,
    SyncError,
    SyncObjectError,
    UnexpectedAttributeError,
    UnknownObjectTypeError,
)
from .import_normalizer import (
    NormalizedObject,
    apply_to_connected_system_object,
    create_connected_system_object,
    normalize_imported_object,
)
from .joins import JoinOutcome, JoinProjectionEngine
from .orchestrator import (
    perform_delta_sync,
    perform_full_import,
    perform_full_sync,
    run_housekeeping,
)
from .pending_exports import (
    ReconciliationOutcome,
    ReconciliationResult,
    is_change_confirmed,
    reconcile_pending_export,
)
from .references import ReferenceResolver
from .scoping import is_cso_in_scope, is_mvo_in_scope
from .watermark import MIN_WATERMARK, is_modified_since, iter_modified_pages

__all__ = [
    "MIN_WATERMARK",
    "AmbiguousMatchError",
    "AmbiguousReferenceError",
    "AttributeFlowProcessor",
    "CancellationSignal",
    "DuplicateConnectedSystemObjectError",
    "DuplicateImportedAttributesError",
    "InvalidAttributeValueError",
    "JoinConflictError",
    "JoinOutcome",
    "JoinProjectionEngine",
    "MissingExternalIdError",
    "NormalizedObject",
    "ReconciliationOutcome",
    "ReconciliationResult",
    "ReferenceResolver",
    "SyncError",
    "SyncObjectError",
    "UnexpectedAttributeError",
    "UnknownObjectTypeError",
    "apply_to_connected_system_object",
    "clear_pending_disconnect",
    "create_connected_system_object",
    "delete_eligible_metaverse_objects",
    "is_change_confirmed",
    "is_cso_in_scope",
    "is_eligible_for_deletion",
    "is_modified_since",
    "is_mvo_in_scope",
    "is_reference_mapping",
    "iter_modified_pages",
    "merge_mappings",
    "normalize_imported_object",
    "perform_delta_sync",
    "perform_full_import",
    "perform_full_sync",
    "reconcile_pending_export",
    "record_connector_disconnected",
    "run_housekeeping",
]
