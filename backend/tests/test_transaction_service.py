import pytest

from kaizen_pos.exceptions import (
    CashierNotFoundError,
    EmptyCartError,
    InsufficientPaymentError,
    InsufficientStockError,
    InvalidDiscountError,
    InvalidPaymentMethodError,
    InvalidQuantityError,
    ProductNotFoundError,
    TransactionNotFoundError,
)
from kaizen_pos.models import Product, Transaction, TransactionLine
from kaizen_pos.services import transaction_service
from kaizen_pos.services.transaction_service import CartItem


def _commit(cashier, items, **kwargs):
    kwargs.setdefault("payment_method", "Card")
    return transaction_service.commit_transaction(items=items, cashier_id=cashier.id, **kwargs)


def _stock(db_session, product_id):
    return db_session.get(Product, product_id, populate_existing=True).stock


def test_single_item_scenario(db_session, cashier, iced_tea):
    result = _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=3)])

    txn = result.transaction
    assert result.created is True
    assert txn.subtotal_cents == 4500
    assert txn.discount_cents == 0
    assert txn.vat_cents == 540
    assert txn.total_cents == 5040
    assert txn.receipt_number == f"TXN-{txn.id:06d}"
    assert txn.cashier_name == "Ana Cashier"
    assert _stock(db_session, iced_tea.id) == 17

    body = txn.to_dict()
    assert body["total"] == 50.4
    assert body["items"][0]["product_sku"] == "BEV-001"


def test_failure_on_second_item_rolls_back_everything(db_session, cashier, make_product):
    a = make_product(stock=10)
    b = make_product(stock=1)
    c = make_product(stock=10)

    with pytest.raises(InsufficientStockError) as exc:
        _commit(cashier, [
            CartItem(product_id=a.id, quantity=2),
            CartItem(product_id=b.id, quantity=2),
            CartItem(product_id=c.id, quantity=2),
        ])

    assert exc.value.details["product_id"] == b.id
    assert [_stock(db_session, p.id) for p in (a, b, c)] == [10, 1, 10]
    assert db_session.query(Transaction).count() == 0
    assert db_session.query(TransactionLine).count() == 0


def test_missing_product_rolls_back_earlier_decrements(db_session, cashier, iced_tea):
    with pytest.raises(ProductNotFoundError) as exc:
        _commit(cashier, [
            CartItem(product_id=iced_tea.id, quantity=1),
            CartItem(product_id=424242, quantity=1, name="Ghost Item"),
        ])
    assert "Ghost Item" in exc.value.message
    assert _stock(db_session, iced_tea.id) == 20
    assert db_session.query(Transaction).count() == 0


def test_empty_cart(db_session, cashier):
    with pytest.raises(EmptyCartError):
        _commit(cashier, [])


@pytest.mark.parametrize("quantity", [0, -1, 2.5, None, "\u00b2", 2**63])
def test_invalid_line_quantity(db_session, cashier, iced_tea, quantity):
    with pytest.raises(InvalidQuantityError):
        _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=quantity)])
    assert _stock(db_session, iced_tea.id) == 20


def test_invalid_payment_method(db_session, cashier, iced_tea):
    with pytest.raises(InvalidPaymentMethodError):
        _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=1)], payment_method="Barter")


def test_unknown_cashier(db_session, iced_tea):
    with pytest.raises(CashierNotFoundError):
        transaction_service.commit_transaction(
            items=[CartItem(product_id=iced_tea.id, quantity=1)],
            payment_method="Card",
            cashier_id=9999,
        )
    assert _stock(db_session, iced_tea.id) == 20


def test_cash_change_is_computed(db_session, cashier, iced_tea):
    result = _commit(
        cashier,
        [CartItem(product_id=iced_tea.id, quantity=3)],
        payment_method="Cash",
        cash_received_cents=10000,
    )
    assert result.transaction.cash_received_cents == 10000
    assert result.transaction.change_cents == 4960


def test_cash_short_of_total_is_rejected(db_session, cashier, iced_tea):
    with pytest.raises(InsufficientPaymentError):
        _commit(
            cashier,
            [CartItem(product_id=iced_tea.id, quantity=3)],
            payment_method="Cash",
            cash_received_cents=4000,
        )
    assert _stock(db_session, iced_tea.id) == 20
    assert db_session.query(Transaction).count() == 0


def test_cash_without_amount_is_exact_tender(db_session, cashier, iced_tea):
    result = _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=1)], payment_method="Cash")
    assert result.transaction.cash_received_cents == result.transaction.total_cents
    assert result.transaction.change_cents == 0


def test_non_cash_records_no_tender(db_session, cashier, iced_tea):
    result = _commit(
        cashier,
        [CartItem(product_id=iced_tea.id, quantity=1)],
        payment_method="QR Code",
        cash_received_cents=99999,
    )
    assert result.transaction.cash_received_cents == 0
    assert result.transaction.change_cents == 0


def test_percent_discount(db_session, cashier, iced_tea):
    result = _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=3)], discount_bps=1000)
    txn = result.transaction
    assert (txn.subtotal_cents, txn.discount_cents, txn.vat_cents, txn.total_cents) == (4500, 450, 486, 4536)


def test_discount_amount_and_percent_together_is_rejected(db_session, cashier, iced_tea):
    with pytest.raises(InvalidDiscountError):
        _commit(
            cashier,
            [CartItem(product_id=iced_tea.id, quantity=1)],
            discount_cents=100,
            discount_bps=1000,
        )


def test_discount_above_subtotal_rolls_back(db_session, cashier, iced_tea):
    with pytest.raises(InvalidDiscountError):
        _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=1)], discount_cents=1501)
    assert _stock(db_session, iced_tea.id) == 20


def test_client_totals_are_hints_only(db_session, cashier, iced_tea):
    result = _commit(
        cashier,
        [CartItem(product_id=iced_tea.id, quantity=3, price_cents_hint=100)],
        client_totals={"subtotal_cents": 300, "vat_cents": 36, "total_cents": 336},
    )
    assert result.transaction.total_cents == 5040
    assert len(result.hint_mismatches) == 4


def test_same_product_twice_in_cart(db_session, cashier, iced_tea):
    result = _commit(cashier, [
        CartItem(product_id=iced_tea.id, quantity=3),
        CartItem(product_id=iced_tea.id, quantity=4),
    ])
    assert [line.line_number for line in result.transaction.lines] == [1, 2]
    assert _stock(db_session, iced_tea.id) == 13


def test_same_product_twice_cannot_oversell(db_session, cashier, make_product):
    product = make_product(stock=5)
    with pytest.raises(InsufficientStockError):
        _commit(cashier, [
            CartItem(product_id=product.id, quantity=3),
            CartItem(product_id=product.id, quantity=3),
        ])
    assert _stock(db_session, product.id) == 5


def test_line_snapshot_survives_product_changes(db_session, cashier, iced_tea):
    txn = _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=2)]).transaction

    iced_tea.name = "Iced Tea (Large)"
    iced_tea.price_cents = 9900
    db_session.commit()

    reloaded = transaction_service.get_transaction(txn.id)
    line = reloaded.lines[0]
    assert line.product_name == "Iced Tea"
    assert line.unit_price_cents == 1500
    assert reloaded.total_cents == 3360


def test_idempotent_replay_does_not_sell_twice(db_session, cashier, iced_tea):
    items = [CartItem(product_id=iced_tea.id, quantity=3)]
    first = _commit(cashier, items, idempotency_key="checkout-1")
    second = _commit(cashier, items, idempotency_key="checkout-1")

    assert first.created is True
    assert second.created is False
    assert second.transaction.id == first.transaction.id
    assert _stock(db_session, iced_tea.id) == 17
    assert db_session.query(Transaction).count() == 1


def test_get_transaction_missing(db_session):
    with pytest.raises(TransactionNotFoundError):
        transaction_service.get_transaction(12345)


def test_list_transactions_newest_first(db_session, cashier, iced_tea):
    first = _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=1)]).transaction
    second = _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=1)]).transaction

    listed = transaction_service.list_transactions()
    assert [t.id for t in listed] == [second.id, first.id]
    assert transaction_service.list_transactions(company_name="Other Co") == []


def test_cash_80_against_total_100_is_rejected(db_session, cashier, make_product):
    # 89.29 + 12% VAT (10.71) = 100.00
    product = make_product(stock=4, price_cents=8929)
    with pytest.raises(InsufficientPaymentError) as exc:
        _commit(
            cashier,
            [CartItem(product_id=product.id, quantity=1)],
            payment_method="Cash",
            cash_received_cents=8000,
        )
    assert exc.value.details == {"total_cents": 10000, "cash_received_cents": 8000}
    assert _stock(db_session, product.id) == 4


def test_unexpected_error_releases_the_write_transaction(db_session, cashier, iced_tea, monkeypatch):
    def boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(transaction_service, "compute_totals", boom)
    with pytest.raises(RuntimeError):
        _commit(cashier, [CartItem(product_id=iced_tea.id, quantity=3)])

    assert not db_session().in_transaction()
    assert _stock(db_session, iced_tea.id) == 20
    assert db_session.query(Transaction).count() == 0
