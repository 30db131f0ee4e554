"""
ORM-level immutability for financial and audit records.

Protected entities:

Entity            | When immutable          | Allowed post-insert write
------------------|-------------------------|------------------------------------
Transaction       | always                  | receipt_number: None -> value, once
TransactionLine   | always                  | none
StockAdjustment   | always                  | none

The listeners fire before the SQL reaches the database, so a rejected write
never lands; the caller's session must be rolled back.
"""

from __future__ import annotations

from sqlalchemy import event, inspect, select

from .exceptions import ImmutableRecordError
from .models import StockAdjustment, Transaction, TransactionLine

_PROTECTED = (Transaction, TransactionLine, StockAdjustment)

# Columns that may be written exactly once after insert (from NULL)
_ASSIGN_ONCE = {
    Transaction: {"receipt_number"},
}


def _changed_columns(target) -> list[str]:
    state = inspect(target)
    return [
        attr.key
        for attr in state.mapper.column_attrs
        if state.attrs[attr.key].history.has_changes()
    ]


def _reject_update(mapper, connection, target):
    changed = _changed_columns(target)
    if not changed:
        # Dirty only through a relationship collection; no row change
        return

    allowed = _ASSIGN_ONCE.get(type(target), set())
    for key in changed:
        if key not in allowed or _stored_value(mapper, connection, target, key) is not None:
            raise ImmutableRecordError(type(target).__name__, target.id, "UPDATE")


def _stored_value(mapper, connection, target, key):
    # Attribute history is empty for expired attributes, so read the row.
    column = mapper.columns[key]
    return connection.execute(
        select(column).where(mapper.local_table.c.id == target.id)
    ).scalar()


def _reject_delete(mapper, connection, target):
    raise ImmutableRecordError(type(target).__name__, target.id, "DELETE")


def register_immutability_listeners() -> None:
    """Attach the guards. Safe to call repeatedly."""
    for model in _PROTECTED:
        if not event.contains(model, "before_update", _reject_update):
            event.listen(model, "before_update", _reject_update)
        if not event.contains(model, "before_delete", _reject_delete):
            event.listen(model, "before_delete", _reject_delete)
