import pytest

from kaizen_pos.exceptions import ImmutableRecordError
from kaizen_pos.models import StockAdjustment, Transaction
from kaizen_pos.services import inventory_service, transaction_service
from kaizen_pos.services.transaction_service import CartItem


@pytest.fixture
def committed(db_session, cashier, iced_tea):
    result = transaction_service.commit_transaction(
        items=[CartItem(product_id=iced_tea.id, quantity=2)],
        payment_method="Card",
        cashier_id=cashier.id,
    )
    return result.transaction


def test_transaction_update_is_rejected(db_session, committed):
    committed.total_cents = 1
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()
    assert db_session.get(Transaction, committed.id).total_cents == 3360


def test_receipt_number_cannot_be_reassigned(db_session, committed):
    committed.receipt_number = "TXN-HACKED"
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()


def test_transaction_delete_is_rejected(db_session, committed):
    db_session.delete(committed)
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()
    assert db_session.query(Transaction).count() == 1


def test_transaction_line_update_is_rejected(db_session, committed):
    committed.lines[0].quantity = 99
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()


def test_stock_adjustment_is_append_only(db_session, iced_tea):
    _, adj = inventory_service.adjust_stock(product_id=iced_tea.id, adjustment_type="in", quantity=5)

    adj.new_stock = 999
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()

    db_session.delete(db_session.get(StockAdjustment, adj.id))
    with pytest.raises(ImmutableRecordError):
        db_session.commit()
    db_session.rollback()
    assert db_session.query(StockAdjustment).count() == 1
