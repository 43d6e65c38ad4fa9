"""Stock ledger: dispensing drugs against the pharmacy catalog."""

import logging

from patient_flow.exceptions import InsufficientStock, UnknownDrug
from patient_flow.hospital.database.drug_repository import DrugRepository
from patient_flow.hospital.database.models import Drug, Prescription, StockStatus, classify_stock

logger = logging.getLogger(__name__)

__all__ = ["StockLedger", "classify_stock", "low_stock", "out_of_stock"]


def low_stock(drugs: list[Drug]) -> list[Drug]:
    """Drugs at or below their reorder level (out-of-stock included)."""
    return [d for d in drugs if d.is_low_stock]


def out_of_stock(drugs: list[Drug]) -> list[Drug]:
    return [d for d in drugs if d.is_out_of_stock]


class StockLedger:
    """Decrements drug stock; never lets it go negative."""

    def __init__(self, drug_repo: DrugRepository | None = None):
        self.drugs = drug_repo or DrugRepository()

    def dispense(self, drug_id: str, quantity: int = 1) -> Drug:
        """
        Take `quantity` units of a drug out of stock.

        Returns the drug with its new stock level.

        Raises:
            ValueError: quantity is not positive
            UnknownDrug: no drug with this id
            InsufficientStock: fewer than `quantity` units left; stock is unchanged
            PersistenceError: the store failed
        """
        if quantity <= 0:
            raise ValueError(f"Dispense quantity must be positive, got {quantity}")

        drug = self.drugs.decrement_stock(drug_id, quantity)
        if drug is None:
            # Nothing changed: find out why
            current = self.drugs.get_by_id(drug_id)
            if current is None:
                raise UnknownDrug(drug_id)
            logger.warning(
                "Refused to dispense %d x %s: only %d in stock",
                quantity, current.name, current.stock_quantity,
            )
            raise InsufficientStock(drug_id, quantity, current.stock_quantity)

        logger.info("Dispensed %d x %s, %d left", quantity, drug.name, drug.stock_quantity)
        status = classify_stock(drug.stock_quantity, drug.reorder_level)
        if status != StockStatus.IN_STOCK:
            logger.warning(
                "%s is %s (%d left, reorder level %d)",
                drug.name, status.value.replace("_", " "),
                drug.stock_quantity, drug.reorder_level,
            )
        return drug

    def dispense_prescription(self, prescription: Prescription) -> Drug:
        """Hand out one unit of a prescribed drug."""
        return self.dispense(prescription.drug_id, 1)
