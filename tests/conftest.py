"""Shared pytest fixtures."""

from decimal import Decimal

import pytest

from patient_flow.forms import IntakeForm
from patient_flow.hospital.database import connection, init_database
from patient_flow.hospital.database.drug_repository import DrugRepository
from patient_flow.hospital.database.models import Drug, Patient
from patient_flow.hospital.database.patient_repository import PatientRepository
from patient_flow.hospital.database.visit_repository import VisitRepository
from patient_flow.state_machine import VisitRouter
from patient_flow.stock_ledger import StockLedger


@pytest.fixture(autouse=True)
def database(tmp_path, monkeypatch):
    """Point every test at its own fresh SQLite file."""
    db_path = tmp_path / "patient_flow_test.db"
    monkeypatch.setattr(connection, "DB_PATH", db_path)
    init_database()
    yield db_path


@pytest.fixture
def patient_repo():
    return PatientRepository()


@pytest.fixture
def drug_repo():
    return DrugRepository()


@pytest.fixture
def visit_repo():
    return VisitRepository()


@pytest.fixture
def router(visit_repo):
    return VisitRouter(visit_repo)


@pytest.fixture
def ledger(drug_repo):
    return StockLedger(drug_repo)


@pytest.fixture
def patient(patient_repo):
    """A registered patient."""
    return patient_repo.create(Patient(
        id="p-test",
        first_name="Test",
        last_name="Patient",
        phone_number="555-0100",
        date_of_birth="1990-01-01",
        gender="female",
    ))


@pytest.fixture
def make_drug(drug_repo):
    """Factory for catalog drugs."""
    counter = {"n": 0}

    def _make(name="Amoxicillin", sales_price="1200.00", stock_quantity=10, reorder_level=3):
        counter["n"] += 1
        return drug_repo.create(Drug(
            id=f"d-test-{counter['n']}",
            name=name,
            purchase_price=Decimal("1.00"),
            sales_price=Decimal(sales_price),
            stock_quantity=stock_quantity,
            reorder_level=reorder_level,
        ))

    return _make


@pytest.fixture
def admitted_visit(router, patient):
    """A visit fresh from intake, waiting for the doctor."""
    return router.admit(IntakeForm(
        patient_id=patient.id,
        created_by="u-frontdesk",
        assigned_doctor_id="u-doctor",
        temperature=38.2,
        chief_complaint="Fever",
    ))
