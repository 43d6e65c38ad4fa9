"""Invoice computation for a visit. Pure: no storage access, no side effects."""

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum

from patient_flow import config
from patient_flow.hospital.database.models import Visit

CENT = Decimal("0.01")


def money(x) -> Decimal:
    """Quantize to two decimal places."""
    return Decimal(str(x or 0)).quantize(CENT, rounding=ROUND_HALF_UP)


class ItemType(Enum):
    CONSULTATION = "consultation"
    LAB_TEST = "lab_test"
    DRUG = "drug"


@dataclass(frozen=True)
class PricingPolicy:
    """Fee schedule used to price a visit."""
    consultation_fee: Decimal = Decimal("100.00")
    lab_test_fee: Decimal = Decimal("50.00")
    # Optional per-test overrides keyed by test name (case-insensitive)
    lab_test_prices: dict[str, Decimal] = field(default_factory=dict)

    @classmethod
    def from_config(cls) -> "PricingPolicy":
        return cls(
            consultation_fee=money(config.CONSULTATION_FEE),
            lab_test_fee=money(config.LAB_TEST_FEE),
        )

    def lab_test_price(self, test_name: str) -> Decimal:
        overrides = {name.strip().lower(): price for name, price in self.lab_test_prices.items()}
        return money(overrides.get(test_name.strip().lower(), self.lab_test_fee))


@dataclass(frozen=True)
class InvoiceLine:
    item_type: ItemType
    item_id: str
    name: str
    quantity: int
    unit_price: Decimal
    total_price: Decimal


@dataclass(frozen=True)
class Invoice:
    visit_id: str
    lines: tuple[InvoiceLine, ...]
    total: Decimal

    def lines_of(self, item_type: ItemType) -> list[InvoiceLine]:
        return [line for line in self.lines if line.item_type == item_type]


def _line(item_type: ItemType, item_id: str, name: str, unit_price: Decimal) -> InvoiceLine:
    unit_price = money(unit_price)
    return InvoiceLine(
        item_type=item_type,
        item_id=item_id,
        name=name,
        quantity=1,
        unit_price=unit_price,
        total_price=money(unit_price * 1),
    )


def compute_invoice(visit: Visit, policy: PricingPolicy | None = None) -> Invoice:
    """
    Itemize the charges for a visit.

    Lines come out in a fixed order: one consultation, then one line per
    lab result, then one per prescription, each in storage order. A
    prescription whose drug cannot be resolved is charged at 0.

    Args:
        visit: Visit snapshot with lab_results and prescriptions loaded
        policy: Fee schedule (defaults to the configured fees)

    Returns:
        Invoice with the line items and the grand total
    """
    policy = policy or PricingPolicy.from_config()

    lines = [
        _line(ItemType.CONSULTATION, visit.id, "Doctor Consultation", policy.consultation_fee),
    ]

    for result in visit.lab_results:
        lines.append(_line(
            ItemType.LAB_TEST, result.id, result.test_name,
            policy.lab_test_price(result.test_name),
        ))

    for prescription in visit.prescriptions:
        drug = prescription.drug
        lines.append(_line(
            ItemType.DRUG,
            prescription.id,
            drug.name if drug else "Medication",
            drug.sales_price if drug else Decimal("0"),
        ))

    total = money(sum((line.total_price for line in lines), Decimal("0")))
    return Invoice(visit_id=visit.id, lines=tuple(lines), total=total)
