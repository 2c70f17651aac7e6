"""
Result reconciliation with monotonic FAIR scores.

Workers are semi-trusted: they may be slow, replay a batch, or race
another worker on the same dataset. The reconciler makes all of that
harmless by only ever accepting a score that is strictly higher than the
stored one. Lower or equal scores are counted as duplicates and dropped,
which makes applying results commutative and idempotent.

Each item is applied in its own transaction. A missing dataset is
recorded and skipped so one stale id never sinks the rest of a batch;
datastore failures abort the batch with ``TransientStoreError`` because
silently dropping an accepted score would break durability.

Tags:
    reconciler, monotonic, idempotent, fair-score, sqlalchemy, dindex

Doc-Types:
    api-reference
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from enum import Enum

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from dindex.core.errors import NotFoundError, TransientStoreError
from dindex.core.logging import get_logger
from dindex.core.models import ReconcileOutcome, ScoreSubmission
from dindex.core.orm.tables import DatasetTable, FujiJobTable, FujiScoreTable
from dindex.core.timestamps import db_utc_now, to_db_utc

logger = get_logger(__name__)

# One retry covers the race where two workers insert the first score for
# the same dataset at the same time.
_MAX_ATTEMPTS = 2


class ApplyStatus(str, Enum):
    UPDATED = "updated"
    DUPLICATE = "duplicate"


def apply_result(session: Session, item: ScoreSubmission) -> ApplyStatus:
    """Apply one score inside the caller's transaction. Does not commit.

    Raises:
        NotFoundError: the dataset does not exist.
    """
    exists = session.scalar(select(DatasetTable.id).where(DatasetTable.id == item.dataset_id))
    if exists is None:
        raise NotFoundError(f"Dataset {item.dataset_id} not found").with_context(
            dataset_id=item.dataset_id
        )

    current = session.scalars(
        select(FujiScoreTable)
        .where(FujiScoreTable.dataset_id == item.dataset_id)
        .with_for_update()
    ).first()

    if current is not None and item.score <= current.score:
        return ApplyStatus.DUPLICATE

    now = db_utc_now()
    evaluated = to_db_utc(item.evaluation_date)
    if current is None:
        session.add(
            FujiScoreTable(
                dataset_id=item.dataset_id,
                score=item.score,
                evaluation_date=evaluated,
                metric_version=item.metric_version,
                software_version=item.software_version,
                created_at=now,
                updated_at=now,
            )
        )
        session.flush()
    else:
        current.score = item.score
        current.evaluation_date = evaluated
        current.metric_version = item.metric_version
        current.software_version = item.software_version
        current.updated_at = now

    session.execute(delete(FujiJobTable).where(FujiJobTable.dataset_id == item.dataset_id))
    return ApplyStatus.UPDATED


def reconcile_results(
    session_factory: Callable[[], Session],
    items: Iterable[ScoreSubmission],
) -> ReconcileOutcome:
    """Apply every item independently and tally the outcome.

    Raises:
        TransientStoreError: the datastore failed; items before the
            failing one stay applied.
    """
    outcome = ReconcileOutcome()
    for item in items:
        status = _apply_with_retry(session_factory, item)
        if status is None:
            outcome.missing.append(item.dataset_id)
        elif status is ApplyStatus.UPDATED:
            outcome.updated.append(item.dataset_id)
        else:
            outcome.duplicates.append(item.dataset_id)

    logger.info(
        "results_reconciled",
        updated=len(outcome.updated),
        duplicates=len(outcome.duplicates),
        missing=len(outcome.missing),
    )
    return outcome


def _apply_with_retry(
    session_factory: Callable[[], Session], item: ScoreSubmission
) -> ApplyStatus | None:
    """Returns ``None`` when the dataset does not exist."""
    for attempt in range(1, _MAX_ATTEMPTS + 1):
        session = session_factory()
        try:
            status = apply_result(session, item)
            session.commit()
            return status
        except NotFoundError:
            session.rollback()
            logger.info("result_dataset_missing", dataset_id=item.dataset_id)
            return None
        except IntegrityError as e:
            session.rollback()
            if attempt >= _MAX_ATTEMPTS:
                raise TransientStoreError(
                    f"Could not store score for dataset {item.dataset_id}", cause=e
                ).with_context(dataset_id=item.dataset_id) from e
            logger.debug("result_insert_race", dataset_id=item.dataset_id, attempt=attempt)
        except SQLAlchemyError as e:
            session.rollback()
            raise TransientStoreError(
                f"Datastore error while storing score for dataset {item.dataset_id}", cause=e
            ).with_context(dataset_id=item.dataset_id) from e
        finally:
            session.close()
    return None  # pragma: no cover


__all__ = ["ApplyStatus", "apply_result", "reconcile_results"]
