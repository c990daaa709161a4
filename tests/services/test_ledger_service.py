"""
Tests for LedgerService and LedgerSelector.

The ledger sum invariant: quantity on hand always equals the sum of a
material's ledger entries.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from supply_kernel.domain.dtos import MovementType, ProductionStage
from supply_kernel.exceptions import InvalidQuantityError, ReferenceNotFoundError
from supply_kernel.models.ledger import MaterialStock
from supply_kernel.selectors.ledger_selector import LedgerSelector
from supply_kernel.services.ledger_service import LedgerService


@pytest.fixture
def ledger(session, deterministic_clock):
    return LedgerService(session, clock=deterministic_clock)


@pytest.fixture
def selector(session):
    return LedgerSelector(session)


class TestPost:

    def test_post_creates_entry_and_projection(self, session, ledger, selector, rye, worker):
        entry = ledger.post(rye.id, Decimal("40"), MovementType.INITIAL, worker, reason="opening")
        session.commit()

        assert entry.seq == 1
        assert entry.quantity_change == Decimal("40")
        assert entry.movement_type == MovementType.INITIAL
        assert entry.performed_by_id == worker.id
        assert entry.performed_by_name == worker.name
        assert selector.quantity_on_hand(rye.id) == Decimal("40")

    def test_sequence_is_monotonic(self, session, ledger, rye, substrate, worker):
        seqs = [
            ledger.post(rye.id, Decimal("1"), MovementType.INITIAL, worker).seq,
            ledger.post(substrate.id, Decimal("2"), MovementType.INITIAL, worker).seq,
            ledger.post(rye.id, Decimal("-1"), MovementType.ADJUSTMENT, worker).seq,
        ]
        session.commit()
        assert seqs == sorted(seqs)
        assert len(set(seqs)) == 3

    def test_ledger_sum_invariant(self, session, ledger, selector, rye, batch, worker):
        movements = [
            ("100", MovementType.INITIAL),
            ("-12.5", MovementType.CONSUMPTION),
            ("80", MovementType.PROCUREMENT),
            ("-3", MovementType.ADJUSTMENT),
            ("20", MovementType.REPLACEMENT),
        ]
        for qty, movement_type in movements:
            ledger.post(rye.id, Decimal(qty), movement_type, worker)
        session.commit()

        entries = selector.entries_for_material(rye.id)
        assert len(entries) == 5
        expected = sum((e.quantity_change for e in entries), Decimal("0"))
        assert selector.quantity_on_hand(rye.id) == expected == Decimal("184.5")
        assert selector.ledger_balance(rye.id) == expected

    def test_stock_may_go_negative(self, session, ledger, selector, rye, worker):
        ledger.post(rye.id, Decimal("-5"), MovementType.ADJUSTMENT, worker)
        session.commit()
        assert selector.quantity_on_hand(rye.id) == Decimal("-5")

    def test_zero_delta_rejected(self, ledger, rye, worker):
        with pytest.raises(InvalidQuantityError):
            ledger.post(rye.id, Decimal("0"), MovementType.ADJUSTMENT, worker)

    def test_unknown_material_rejected(self, ledger, worker):
        with pytest.raises(ReferenceNotFoundError) as exc_info:
            ledger.post(uuid4(), Decimal("1"), MovementType.INITIAL, worker)
        assert exc_info.value.entity_type == "Material"

    def test_unknown_batch_rejected(self, ledger, rye, worker):
        with pytest.raises(ReferenceNotFoundError) as exc_info:
            ledger.post(
                rye.id, Decimal("-1"), MovementType.CONSUMPTION, worker, batch_id=uuid4()
            )
        assert exc_info.value.entity_type == "Batch"

    def test_consumption_tags(self, session, ledger, selector, rye, batch, worker):
        ledger.post(
            rye.id,
            Decimal("-4"),
            MovementType.CONSUMPTION,
            worker,
            batch_id=batch.id,
            stage=ProductionStage.SPAWN,
        )
        session.commit()

        [entry] = selector.entries_for_batch(batch.id)
        assert entry.stage == ProductionStage.SPAWN
        assert entry.batch_id == batch.id

    def test_post_logs_event(self, session, ledger, rye, worker, captured_logs):
        ledger.post(rye.id, Decimal("3"), MovementType.INITIAL, worker)
        session.commit()
        posted = [r for r in captured_logs() if r["message"] == "ledger_entry_posted"]
        assert len(posted) == 1
        assert posted[0]["material_id"] == str(rye.id)
        assert posted[0]["quantity_change"] == "3"


class TestSelector:

    def test_quantity_on_hand_without_entries(self, selector, rye):
        assert selector.quantity_on_hand(rye.id) == Decimal("0")
        assert selector.ledger_balance(rye.id) == Decimal("0")

    def test_entries_filtered_by_batch_and_type(
        self, session, ledger, selector, rye, substrate, batch, worker
    ):
        ledger.post(rye.id, Decimal("50"), MovementType.INITIAL, worker)
        ledger.post(rye.id, Decimal("-5"), MovementType.CONSUMPTION, worker, batch_id=batch.id)
        ledger.post(substrate.id, Decimal("2"), MovementType.ADJUSTMENT, worker, batch_id=batch.id)
        session.commit()

        assert len(selector.entries_for_batch(batch.id)) == 2
        consumption = selector.entries_for_batch(
            batch.id, movement_types=(MovementType.CONSUMPTION,)
        )
        assert [e.material_id for e in consumption] == [rye.id]

    def test_entries_for_order(self, session, ledger, selector, rye, worker):
        order_id = uuid4()
        ledger.post(rye.id, Decimal("10"), MovementType.PROCUREMENT, worker, order_id=order_id)
        ledger.post(rye.id, Decimal("1"), MovementType.INITIAL, worker)
        session.commit()
        assert [e.quantity_change for e in selector.entries_for_order(order_id)] == [
            Decimal("10")
        ]

    def test_stock_levels(self, session, ledger, selector, rye, substrate, worker):
        ledger.post(rye.id, Decimal("10"), MovementType.INITIAL, worker)
        ledger.post(substrate.id, Decimal("3"), MovementType.INITIAL, worker)
        session.commit()
        levels = {level.material_id: level.quantity_on_hand for level in selector.stock_levels()}
        assert levels == {rye.id: Decimal("10"), substrate.id: Decimal("3")}


class TestProjectionMaintenance:

    def _corrupt(self, session, material_id, qty):
        stock = session.query(MaterialStock).filter_by(material_id=material_id).one()
        stock.quantity_on_hand = Decimal(qty)
        session.commit()

    def test_drift_detected_and_rebuilt(self, session, ledger, selector, rye, worker):
        ledger.post(rye.id, Decimal("25"), MovementType.INITIAL, worker)
        session.commit()
        self._corrupt(session, rye.id, "999")

        [drift] = selector.projection_drift()
        assert drift.material_id == rye.id
        assert drift.ledger_qty == Decimal("25")
        assert drift.difference == Decimal("974")

        level = ledger.rebuild_projection(rye.id)
        session.commit()
        assert level.quantity_on_hand == Decimal("25")
        assert selector.projection_drift() == []

    def test_no_drift_after_normal_posting(self, session, ledger, selector, rye, worker):
        ledger.post(rye.id, Decimal("25"), MovementType.INITIAL, worker)
        ledger.post(rye.id, Decimal("-7"), MovementType.CONSUMPTION, worker)
        session.commit()
        assert selector.projection_drift() == []

    def test_lock_quantity_on_hand(self, session, ledger, rye, worker):
        assert ledger.lock_quantity_on_hand(rye.id) == Decimal("0")
        ledger.post(rye.id, Decimal("8"), MovementType.INITIAL, worker)
        assert ledger.lock_quantity_on_hand(rye.id) == Decimal("8")
        session.commit()
