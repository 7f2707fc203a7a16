"""Change lists between snapshots, expressed as JSON Patch operations."""

from typing import Any, Iterable

import jsonpatch
import structlog

log = structlog.stdlib.get_logger()

ChangeList = list[dict[str, Any]] | jsonpatch.JsonPatch


def compute_changes(source: Any, target: Any) -> list[dict[str, Any]]:
    """
    Compute the change list turning one snapshot into another.

    Args:
        source: Snapshot the changes apply to
        target: Snapshot the changes produce

    Returns:
        Ordered list of JSON Patch operations
    """
    return jsonpatch.make_patch(source, target).patch


def apply_changes(document: Any, changes: ChangeList | Iterable[dict[str, Any]]) -> Any:
    """
    Apply a change list to a snapshot, in order and in place.

    Args:
        document: Snapshot to mutate
        changes: JSON Patch operations or a JsonPatch instance

    Returns:
        The patched snapshot. This is ``document`` itself unless an operation
        replaces the root.

    Raises:
        jsonpatch.JsonPatchException: If an operation is invalid or conflicts
            with the snapshot
        jsonpointer.JsonPointerException: If an operation path does not resolve
    """
    if not isinstance(changes, jsonpatch.JsonPatch):
        changes = jsonpatch.JsonPatch(list(changes))

    result = changes.apply(document, in_place=True)
    log.debug("changes_applied", operation_count=len(changes.patch))
    return result
