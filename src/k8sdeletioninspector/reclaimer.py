"""Forced deletion of objects that have been stuck for too long."""

from __future__ import annotations

__all__ = (
    "ReclaimOutcome",
    "ReclaimResult",
    "force_delete",
    "is_stale",
    "reclaim_stale",
)

import enum
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta

import structlog
from kubernetes.client.exceptions import ApiException

from k8sdeletioninspector.k8s import ClusterAccessor, is_not_found
from k8sdeletioninspector.resources import ObjectRef, StuckObject

logger = structlog.getLogger(__name__)


class ReclaimOutcome(str, enum.Enum):
    DELETED = "deleted"
    ALREADY_GONE = "already-gone"
    FAILED = "failed"


@dataclass(frozen=True)
class ReclaimResult:
    """What happened when forcing the deletion of one stuck object."""

    stuck_object: StuckObject
    outcome: ReclaimOutcome
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is not ReclaimOutcome.FAILED


def is_stale(stuck: StuckObject, age_threshold: timedelta, now: datetime) -> bool:
    """Return `True` if the object has been stuck for longer than
    ``age_threshold``.
    """
    return now - stuck.deletion_timestamp > age_threshold


def force_delete(
    accessor: ClusterAccessor, ref: ObjectRef, uid: str | None = None
) -> ReclaimOutcome:
    """Clear an object's finalizers and delete it again.

    The object is fetched first. If it is no longer being deleted, or its
    uid differs from ``uid``, the object that got stuck is gone and a new
    one took its name; it is left untouched. The update carries the
    fetched ``resourceVersion`` and the delete a uid precondition, so a
    replacement racing with this call is never modified.

    A 404 when fetching or updating the object means it is already gone.
    A 404 from the final delete is a success too: clearing the finalizers
    usually lets the garbage collector finish the pending deletion first.
    A 409 from the delete means the uid precondition failed.

    Raises
    ------
    kubernetes.client.exceptions.ApiException
        Raised for any other API error; the step that failed is named in
        the log.
    """
    namespace, resource_type, name = ref.namespace, ref.resource_type, ref.name

    try:
        obj = accessor.get_object(namespace, resource_type, name)
    except ApiException as err:
        if is_not_found(err):
            return ReclaimOutcome.ALREADY_GONE
        logger.error(f"Error fetching {ref}: {err.status} {err.reason}")
        raise

    metadata = obj.setdefault("metadata", {})
    if not metadata.get("deletionTimestamp"):
        logger.info(f"{ref} is no longer being deleted, leaving it alone")
        return ReclaimOutcome.ALREADY_GONE
    if uid is not None and metadata.get("uid") != uid:
        logger.info(f"{ref} was replaced by a new object, leaving it alone")
        return ReclaimOutcome.ALREADY_GONE
    uid = metadata.get("uid", uid)

    metadata["finalizers"] = []
    try:
        accessor.update_object(namespace, resource_type, name, obj)
    except ApiException as err:
        if is_not_found(err):
            return ReclaimOutcome.ALREADY_GONE
        logger.error(
            f"Error removing finalizers for {ref}: {err.status} {err.reason}"
        )
        raise

    try:
        accessor.delete_object(namespace, resource_type, name, uid=uid)
    except ApiException as err:
        if is_not_found(err):
            logger.debug(f"{ref} was removed once its finalizers were cleared")
        elif err.status == 409 and uid is not None:
            logger.info(f"{ref} was replaced before it could be deleted")
            return ReclaimOutcome.ALREADY_GONE
        else:
            logger.error(f"Error deleting {ref}: {err.status} {err.reason}")
            raise

    return ReclaimOutcome.DELETED


def reclaim_stale(
    snapshot: Iterable[StuckObject],
    age_threshold: timedelta,
    now: datetime,
    accessor: ClusterAccessor,
) -> list[ReclaimResult]:
    """Force the deletion of every registry entry stuck for longer than
    ``age_threshold``.

    Parameters
    ----------
    snapshot : iterable of `StuckObject`
        Registry entries, usually from `StuckRegistry.list`.
    age_threshold : `datetime.timedelta`
        Entries qualify when ``now - deletion_timestamp`` exceeds this.
    now : `datetime.datetime`
        The current time, timezone-aware.
    accessor : `ClusterAccessor`
        Access to the cluster.

    Returns
    -------
    results : `list` of `ReclaimResult`
        One result per distinct qualifying object. A failure on one object,
        whether an API error or a connection problem, doesn't stop the
        others.
    """
    results = []
    seen: set[ObjectRef] = set()
    for stuck in snapshot:
        if stuck.ref in seen or not is_stale(stuck, age_threshold, now):
            continue
        seen.add(stuck.ref)

        logger.info(
            f"Force deleting {stuck.ref}, stuck since "
            f"{stuck.deletion_timestamp.isoformat()}"
        )
        try:
            outcome = force_delete(accessor, stuck.ref, uid=stuck.uid)
        except ApiException as err:
            results.append(
                ReclaimResult(
                    stuck,
                    ReclaimOutcome.FAILED,
                    error=f"{err.status} {err.reason}",
                )
            )
            continue
        except Exception as err:
            logger.exception(f"Error force deleting {stuck.ref}")
            results.append(
                ReclaimResult(
                    stuck,
                    ReclaimOutcome.FAILED,
                    error=f"{type(err).__name__}: {err}",
                )
            )
            continue

        if outcome is ReclaimOutcome.ALREADY_GONE:
            logger.info(f"{stuck.ref} no longer exists or was replaced")
        else:
            logger.info(
                f"Successfully removed finalizers and deleted {stuck.ref}"
            )
        results.append(ReclaimResult(stuck, outcome))
    return results
