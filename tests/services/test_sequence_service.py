"""Tests for SequenceService document numbering."""

import pytest

from supply_kernel.services.sequence_service import SequenceService


@pytest.fixture
def sequences(session):
    return SequenceService(session)


def test_first_value_is_one(sequences):
    assert sequences.current_value(SequenceService.PURCHASE_ORDER) is None
    assert sequences.next_value(SequenceService.PURCHASE_ORDER) == 1
    assert sequences.current_value(SequenceService.PURCHASE_ORDER) == 1


def test_values_increase(session, sequences):
    values = [sequences.next_value(SequenceService.LEDGER_ENTRY) for _ in range(5)]
    session.commit()
    assert values == [1, 2, 3, 4, 5]


def test_sequences_are_independent(sequences):
    sequences.next_value(SequenceService.PURCHASE_ORDER)
    sequences.next_value(SequenceService.PURCHASE_ORDER)
    assert sequences.next_value(SequenceService.GOODS_RECEIPT) == 1


@pytest.mark.parametrize(
    "name, expected",
    [
        (SequenceService.PURCHASE_REQUEST, "PR-000001"),
        (SequenceService.RESERVATION, "RES-000001"),
        (SequenceService.PURCHASE_ORDER, "PO-000001"),
        (SequenceService.GOODS_RECEIPT, "GRN-000001"),
        (SequenceService.PAYMENT_VOUCHER, "PV-000001"),
    ],
)
def test_document_numbers(sequences, name, expected):
    assert sequences.next_number(name) == expected


def test_rolled_back_value_is_reused(session, sequences):
    sequences.next_value(SequenceService.PURCHASE_ORDER)
    session.commit()
    sequences.next_value(SequenceService.PURCHASE_ORDER)
    session.rollback()
    assert sequences.next_value(SequenceService.PURCHASE_ORDER) == 2


def test_ledger_sequence_has_no_document_number(sequences):
    with pytest.raises(ValueError):
        sequences.next_number(SequenceService.LEDGER_ENTRY)
