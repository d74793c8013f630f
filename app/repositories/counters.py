"""
Atomic conditional counters (one row per key, capped increments).

Every increment is a single INSERT ... ON CONFLICT DO UPDATE ... WHERE counter < limit
RETURNING counter statement, so the database row lock decides who gets the last slot.
There is no read-then-write path: a dialect without native upsert raises.
"""
import enum
from dataclasses import dataclass
from typing import Any

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session


class CounterStatus(str, enum.Enum):
    CREATED = "created"
    INCREMENTED = "incremented"
    REJECTED = "rejected"


@dataclass(frozen=True)
class CounterOutcome:
    status: CounterStatus
    count: int

    @property
    def accepted(self) -> bool:
        return self.status != CounterStatus.REJECTED


_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


def _insert_for(db: Session):
    dialect = db.get_bind().dialect.name
    try:
        return _INSERTS[dialect]
    except KeyError:
        raise NotImplementedError(f"Atomic counters are not supported on dialect '{dialect}'") from None


def conditional_increment(
    db: Session,
    model: Any,
    keys: dict[str, Any],
    counter: str,
    limit: int | None,
    touch: dict[str, Any] | None = None,
) -> CounterOutcome:
    """
    Create the row for `keys` with counter = 1, or add 1 to it while it is below `limit`.
    limit=None means uncapped. `touch` columns are written on insert and on every accepted increment.
    Does not commit; the caller owns the transaction.
    """
    if limit is not None and limit < 1:
        return CounterOutcome(CounterStatus.REJECTED, _current_count(db, model, keys, counter))

    touch = touch or {}
    column = getattr(model, counter)
    stmt = _insert_for(db)(model).values(**keys, **{counter: 1}, **touch)
    stmt = stmt.on_conflict_do_update(
        index_elements=list(keys),
        set_={counter: column + 1, **touch},
        where=(column < limit) if limit is not None else None,
    ).returning(column)

    new_count = db.execute(stmt).scalar_one_or_none()
    if new_count is None:
        return CounterOutcome(CounterStatus.REJECTED, _current_count(db, model, keys, counter))
    status = CounterStatus.CREATED if new_count == 1 else CounterStatus.INCREMENTED
    return CounterOutcome(status, new_count)


def _current_count(db: Session, model: Any, keys: dict[str, Any], counter: str) -> int:
    """Display-only read; never used to decide an increment."""
    q = db.query(getattr(model, counter))
    for name, value in keys.items():
        q = q.filter(getattr(model, name) == value)
    return q.scalar() or 0
