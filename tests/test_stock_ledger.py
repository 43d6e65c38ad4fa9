"""Tests for the stock ledger."""

from concurrent.futures import ThreadPoolExecutor

import pytest

from patient_flow.exceptions import InsufficientStock, StockError, UnknownDrug
from patient_flow.hospital.database.models import Drug, StockStatus, classify_stock
from patient_flow.stock_ledger import low_stock, out_of_stock


class TestDispense:
    """Tests for StockLedger.dispense."""

    def test_decrements(self, ledger, drug_repo, make_drug):
        drug = make_drug(stock_quantity=5, reorder_level=3)
        updated = ledger.dispense(drug.id, 1)
        assert updated.stock_quantity == 4
        assert drug_repo.get_by_id(drug.id).stock_quantity == 4

    @pytest.mark.parametrize("reorder_level, expected", [
        (4, StockStatus.LOW_STOCK),
        (10, StockStatus.LOW_STOCK),
        (3, StockStatus.IN_STOCK),
    ])
    def test_low_stock_after_dispense(self, ledger, make_drug, reorder_level, expected):
        drug = make_drug(stock_quantity=5, reorder_level=reorder_level)
        assert ledger.dispense(drug.id, 1).stock_status == expected

    def test_out_of_stock_refused(self, ledger, drug_repo, make_drug):
        drug = make_drug(stock_quantity=0)
        with pytest.raises(InsufficientStock) as exc:
            ledger.dispense(drug.id, 1)
        assert exc.value.available == 0
        assert drug_repo.get_by_id(drug.id).stock_quantity == 0

    def test_more_than_available_refused(self, ledger, drug_repo, make_drug):
        drug = make_drug(stock_quantity=2)
        with pytest.raises(InsufficientStock):
            ledger.dispense(drug.id, 3)
        assert drug_repo.get_by_id(drug.id).stock_quantity == 2

    def test_dispense_down_to_zero(self, ledger, make_drug):
        drug = make_drug(stock_quantity=2)
        updated = ledger.dispense(drug.id, 2)
        assert updated.stock_quantity == 0
        assert updated.stock_status == StockStatus.OUT_OF_STOCK

    def test_unknown_drug(self, ledger):
        with pytest.raises(UnknownDrug):
            ledger.dispense("no-such-drug")

    def test_stock_errors_share_base(self):
        assert issubclass(InsufficientStock, StockError)
        assert issubclass(UnknownDrug, StockError)

    @pytest.mark.parametrize("quantity", [0, -1])
    def test_quantity_must_be_positive(self, ledger, drug_repo, make_drug, quantity):
        drug = make_drug(stock_quantity=5)
        with pytest.raises(ValueError):
            ledger.dispense(drug.id, quantity)
        assert drug_repo.get_by_id(drug.id).stock_quantity == 5

    def test_repeated_dispenses_stop_at_zero(self, ledger, drug_repo, make_drug):
        drug = make_drug(stock_quantity=3)
        dispensed = 0
        for _ in range(5):
            try:
                ledger.dispense(drug.id)
                dispensed += 1
            except InsufficientStock:
                pass
        assert dispensed == 3
        assert drug_repo.get_by_id(drug.id).stock_quantity == 0

    def test_concurrent_dispenses_never_go_negative(self, ledger, drug_repo, make_drug):
        drug = make_drug(stock_quantity=5)

        def attempt(_):
            try:
                ledger.dispense(drug.id)
                return "ok"
            except InsufficientStock:
                return "refused"

        with ThreadPoolExecutor(max_workers=20) as pool:
            outcomes = list(pool.map(attempt, range(20)))

        assert outcomes.count("ok") == 5
        assert outcomes.count("refused") == 15
        assert drug_repo.get_by_id(drug.id).stock_quantity == 0

    def test_dispense_prescription(self, ledger, visit_repo, admitted_visit, make_drug):
        drug = make_drug(stock_quantity=5)
        prescription = visit_repo.create_prescription(
            admitted_visit.id, drug.id, "500mg", "3x daily", "7 days",
        )
        assert ledger.dispense_prescription(prescription).stock_quantity == 4


class TestClassification:
    """Stock classification is derived on read."""

    @pytest.mark.parametrize("stock, reorder, expected", [
        (0, 5, StockStatus.OUT_OF_STOCK),
        (0, 0, StockStatus.OUT_OF_STOCK),
        (5, 5, StockStatus.LOW_STOCK),
        (6, 5, StockStatus.IN_STOCK),
    ])
    def test_classify(self, stock, reorder, expected):
        assert classify_stock(stock, reorder) == expected

    def test_filters(self):
        drugs = [
            Drug(id="a", name="A", stock_quantity=0, reorder_level=2),
            Drug(id="b", name="B", stock_quantity=2, reorder_level=2),
            Drug(id="c", name="C", stock_quantity=9, reorder_level=2),
        ]
        assert [d.id for d in low_stock(drugs)] == ["a", "b"]
        assert [d.id for d in out_of_stock(drugs)] == ["a"]
