from __future__ import annotations

from decimal import Decimal

import pytest
from pydantic import ValidationError

from expense_tracker.models import Transaction, TransactionDraft, TransactionPatch, TransactionType

from tests.helpers.clock import FIXED_NOW


def _draft(**overrides):
    data = {
        "amount": "12.50",
        "category": "Food & Dining",
        "type": "EXPENSE",
        "date": FIXED_NOW,
    }
    data.update(overrides)
    return TransactionDraft(**data)


def test_draft_normalizes_input():
    d = _draft(category="  Shopping  ")
    assert d.amount == Decimal("12.50")
    assert d.category == "Shopping"
    assert d.type is TransactionType.EXPENSE
    assert d.description == ""


@pytest.mark.parametrize("amount", ["0", "-5", "abc", "NaN", "Infinity", True])
def test_draft_rejects_non_positive_or_junk_amounts(amount):
    with pytest.raises(ValidationError):
        _draft(amount=amount)


@pytest.mark.parametrize("amount", ["0.004", "0.001", "10.005", "1e-9"])
def test_draft_rejects_sub_cent_amounts(amount):
    with pytest.raises(ValidationError, match="2 decimal places"):
        _draft(amount=amount)
    with pytest.raises(ValidationError, match="2 decimal places"):
        TransactionPatch(amount=amount)


def test_draft_accepts_whole_cents_and_caps_the_magnitude():
    assert _draft(amount="10.50").amount == Decimal("10.50")
    assert _draft(amount="7.000").amount == Decimal("7")
    assert _draft(amount="9999999999999.99").amount == Decimal("9999999999999.99")
    with pytest.raises(ValidationError, match="less than"):
        _draft(amount="10000000000000")
    with pytest.raises(ValidationError, match="less than"):
        _draft(amount="1e30")


def test_draft_rejects_blank_category_unknown_type_and_extra_fields():
    with pytest.raises(ValidationError):
        _draft(category="   ")
    with pytest.raises(ValidationError):
        _draft(type="REFUND")
    with pytest.raises(ValidationError):
        _draft(id=7)


def test_draft_to_transaction_is_unsaved():
    tx = _draft().to_transaction(created_at=FIXED_NOW)
    assert isinstance(tx, Transaction)
    assert tx.id == 0 and not tx.is_persisted
    assert tx.created_at == FIXED_NOW
    assert not tx.is_income


def test_patch_reports_only_submitted_fields():
    patch = TransactionPatch(amount=99, description="")
    assert patch.changes() == {"amount": Decimal("99"), "description": ""}


def test_patch_does_not_accept_type():
    with pytest.raises(ValidationError):
        TransactionPatch(type="INCOME")
    with pytest.raises(ValidationError):
        TransactionPatch(amount=0)


def test_transaction_is_immutable():
    tx = _draft().to_transaction()
    with pytest.raises(AttributeError):
        tx.amount = Decimal("1")  # type: ignore[misc]
