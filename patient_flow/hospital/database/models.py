"""Record types shared by the repositories and the routing core."""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class Location(Enum):
    """Department currently responsible for a visit."""
    FRONTDESK = "frontdesk"
    DOCTOR = "doctor"
    LAB = "lab"
    PHARMACY = "pharmacy"
    ACCOUNTS = "accounts"


class VisitStatus(Enum):
    """Why a visit is where it is. Informational; routing uses Location."""
    PENDING = "pending"
    IN_CONSULTATION = "in_consultation"
    LAB_REQUESTED = "lab_requested"
    PHARMACY_REQUESTED = "pharmacy_requested"
    BILLING = "billing"
    COMPLETED = "completed"


class StockStatus(Enum):
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


def classify_stock(stock_quantity: int, reorder_level: int) -> StockStatus:
    """Derive the stock classification; never stored."""
    if stock_quantity <= 0:
        return StockStatus.OUT_OF_STOCK
    if stock_quantity <= reorder_level:
        return StockStatus.LOW_STOCK
    return StockStatus.IN_STOCK


@dataclass
class Patient:
    id: str
    first_name: str
    last_name: str
    phone_number: str
    date_of_birth: str
    gender: str
    address: str | None = None
    emergency_contact: str | None = None
    blood_type: str | None = None
    allergies: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


@dataclass
class Drug:
    id: str
    name: str
    purchase_price: Decimal = Decimal("0.00")
    sales_price: Decimal = Decimal("0.00")
    stock_quantity: int = 0
    reorder_level: int = 0
    unit: str = "unit"
    generic_name: str | None = None
    description: str | None = None
    category: str | None = None
    manufacturer: str | None = None
    expiry_date: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @property
    def stock_status(self) -> StockStatus:
        return classify_stock(self.stock_quantity, self.reorder_level)

    @property
    def is_low_stock(self) -> bool:
        return self.stock_quantity <= self.reorder_level

    @property
    def is_out_of_stock(self) -> bool:
        return self.stock_quantity == 0


@dataclass
class Prescription:
    id: str
    visit_id: str
    drug_id: str
    dosage: str
    frequency: str
    duration: str
    notes: str | None = None
    created_at: str | None = None
    drug: Drug | None = None


@dataclass
class LabResult:
    id: str
    visit_id: str
    test_name: str
    test_result: str
    performed_by: str
    reference_range: str | None = None
    notes: str | None = None
    created_at: str | None = None


@dataclass
class Visit:
    id: str
    patient_id: str
    created_by: str
    visit_date: str
    status: VisitStatus = VisitStatus.IN_CONSULTATION
    current_location: Location = Location.DOCTOR
    assigned_doctor_id: str | None = None

    # Vitals
    weight: float | None = None
    blood_pressure_systolic: int | None = None
    blood_pressure_diastolic: int | None = None
    temperature: float | None = None
    pulse_rate: int | None = None
    respiratory_rate: int | None = None
    chief_complaint: str | None = None

    # Doctor's findings
    diagnosis: str | None = None
    notes: str | None = None

    created_at: str | None = None
    updated_at: str | None = None
    completed_at: str | None = None

    # Composed records, loaded by VisitRepository.get_visit
    patient: Patient | None = None
    prescriptions: list[Prescription] = field(default_factory=list)
    lab_results: list[LabResult] = field(default_factory=list)

    @property
    def is_completed(self) -> bool:
        return self.status == VisitStatus.COMPLETED
