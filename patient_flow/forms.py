"""Pydantic input models for the department dashboards."""

from collections import OrderedDict
from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from patient_flow.hospital.database.models import Drug, Patient


def _blank_to_none(v):
    if isinstance(v, str) and not v.strip():
        return None
    return v


class PatientForm(BaseModel):
    """Front-desk patient registration."""

    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    phone_number: str = Field(min_length=1)
    date_of_birth: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$", description="YYYY-MM-DD")
    gender: Literal["male", "female"]
    address: str | None = None
    emergency_contact: str | None = None
    blood_type: str | None = None
    allergies: str | None = None

    @field_validator("address", "emergency_contact", "blood_type", "allergies", mode="before")
    @classmethod
    def empty_optional(cls, v):
        return _blank_to_none(v)

    def to_patient(self) -> Patient:
        return Patient(id="", **self.model_dump())


class IntakeForm(BaseModel):
    """Vitals and routing details captured when a visit is opened."""

    patient_id: str = Field(min_length=1)
    created_by: str = Field(min_length=1)
    assigned_doctor_id: str | None = None

    weight: float | None = Field(None, ge=0, description="Weight in kg")
    blood_pressure_systolic: int | None = Field(None, ge=0)
    blood_pressure_diastolic: int | None = Field(None, ge=0)
    temperature: float | None = Field(None, ge=0, description="Temperature in Celsius")
    pulse_rate: int | None = Field(None, ge=0)
    respiratory_rate: int | None = Field(None, ge=0)
    chief_complaint: str | None = None

    @field_validator(
        "assigned_doctor_id", "weight", "blood_pressure_systolic",
        "blood_pressure_diastolic", "temperature", "pulse_rate",
        "respiratory_rate", "chief_complaint",
        mode="before",
    )
    @classmethod
    def empty_to_none(cls, v):
        """Dashboards submit untouched inputs as empty strings."""
        return _blank_to_none(v)

    def vitals(self) -> dict:
        """Recorded vitals only."""
        return self.model_dump(
            include={
                "weight", "blood_pressure_systolic", "blood_pressure_diastolic",
                "temperature", "pulse_rate", "respiratory_rate",
            },
            exclude_none=True,
        )


class StagedPrescription(BaseModel):
    """A drug picked during consultation, possibly not yet filled in."""

    drug_id: str
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    notes: str | None = None

    @property
    def is_complete(self) -> bool:
        return all((self.dosage, self.frequency, self.duration))


class PrescriptionPad:
    """
    Drugs staged by the doctor, keyed by drug id in the order they were added.

    Adding a drug that is already on the pad clears its details but keeps
    its position.
    """

    EDITABLE_FIELDS = ("dosage", "frequency", "duration", "notes")

    def __init__(self, items: list[StagedPrescription] | None = None):
        self._items: OrderedDict[str, StagedPrescription] = OrderedDict()
        for item in items or []:
            self._items[item.drug_id] = item

    def add(self, drug_id: str) -> StagedPrescription:
        self._items[drug_id] = StagedPrescription(drug_id=drug_id)
        return self._items[drug_id]

    def set_field(self, drug_id: str, field: str, value: str) -> None:
        """Edit one detail of a staged drug; unknown drugs are ignored."""
        if field not in self.EDITABLE_FIELDS:
            raise ValueError(f"Cannot edit prescription field '{field}'")
        staged = self._items.get(drug_id)
        if staged is not None:
            self._items[drug_id] = staged.model_copy(update={field: value})

    def remove(self, drug_id: str) -> None:
        self._items.pop(drug_id, None)

    def ready(self) -> list[StagedPrescription]:
        """Complete entries only, in pad order."""
        return [item for item in self._items.values() if item.is_complete]

    def __iter__(self):
        return iter(self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, drug_id) -> bool:
        return drug_id in self._items


class ConsultationPayload(BaseModel):
    """What the doctor sends along with a visit."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    diagnosis: str | None = None
    notes: str | None = None
    prescriptions: PrescriptionPad = Field(default_factory=PrescriptionPad)

    @field_validator("prescriptions", mode="before")
    @classmethod
    def build_pad(cls, v):
        """Accept a list of staged entries (models or dicts) in pad order."""
        if isinstance(v, (list, tuple)):
            return PrescriptionPad([
                item if isinstance(item, StagedPrescription)
                else StagedPrescription.model_validate(item)
                for item in v
            ])
        return v


class DoctorAssignment(BaseModel):
    """Front desk sending a visit (back) to a doctor."""

    assigned_doctor_id: str | None = None

    @field_validator("assigned_doctor_id", mode="before")
    @classmethod
    def empty_to_none(cls, v):
        return _blank_to_none(v)


class CloseOutPayload(BaseModel):
    """Accounts close-out of a visit."""

    payment_accepted: bool = False


class LabResultForm(BaseModel):
    """A test outcome entered by the lab."""

    test_name: str = Field(min_length=1)
    test_result: str = Field(min_length=1)
    performed_by: str = Field(min_length=1)
    reference_range: str | None = None
    notes: str | None = None

    @field_validator("reference_range", "notes", mode="before")
    @classmethod
    def empty_optional(cls, v):
        return _blank_to_none(v)


class DrugForm(BaseModel):
    """Pharmacy catalog entry for inventory management."""

    name: str = Field(min_length=1)
    generic_name: str | None = None
    description: str | None = None
    category: str | None = None
    manufacturer: str | None = None
    expiry_date: str | None = None
    purchase_price: Decimal = Field(ge=0, decimal_places=2)
    sales_price: Decimal = Field(ge=0, decimal_places=2)
    stock_quantity: int = Field(ge=0)
    reorder_level: int = Field(0, ge=0)
    unit: str = "unit"

    def to_drug(self) -> Drug:
        return Drug(id="", **self.model_dump())
