"""Seed the database with mock patients, drugs, and visits at each department."""

from decimal import Decimal

from patient_flow.forms import ConsultationPayload, IntakeForm, LabResultForm, StagedPrescription
from patient_flow.hospital.database import DrugRepository, PatientRepository, init_database
from patient_flow.hospital.database.models import Drug, Patient
from patient_flow.state_machine import Role, VisitRouter


MOCK_PATIENTS = [
    Patient(
        id="p-001",
        first_name="Adaeze",
        last_name="Okafor",
        phone_number="0803-555-0101",
        date_of_birth="1985-03-15",
        gender="female",
        address="12 Marina Rd, Lagos",
        blood_type="O+",
    ),
    Patient(
        id="p-002",
        first_name="Tunde",
        last_name="Bello",
        phone_number="0803-555-0102",
        date_of_birth="1992-07-22",
        gender="male",
        allergies="Penicillin",
    ),
    Patient(
        id="p-003",
        first_name="Grace",
        last_name="Eze",
        phone_number="0803-555-0103",
        date_of_birth="1978-11-08",
        gender="female",
        emergency_contact="0803-555-0199",
    ),
]

MOCK_DRUGS = [
    Drug(
        id="d-001",
        name="Amoxicillin 500mg",
        generic_name="Amoxicillin",
        category="Antibiotic",
        purchase_price=Decimal("800.00"),
        sales_price=Decimal("1200.00"),
        stock_quantity=40,
        reorder_level=10,
        unit="capsule",
    ),
    Drug(
        id="d-002",
        name="Paracetamol 500mg",
        generic_name="Acetaminophen",
        category="Analgesic",
        purchase_price=Decimal("50.00"),
        sales_price=Decimal("100.00"),
        stock_quantity=8,
        reorder_level=20,
        unit="tablet",
    ),
    Drug(
        id="d-003",
        name="Artemether/Lumefantrine",
        category="Antimalarial",
        purchase_price=Decimal("1500.00"),
        sales_price=Decimal("2500.00"),
        stock_quantity=0,
        reorder_level=5,
        unit="pack",
    ),
]

DOCTOR_ID = "u-doctor-1"
FRONTDESK_ID = "u-frontdesk-1"
LAB_ID = "u-lab-1"


def seed_database():
    """Seed the database with mock data."""
    print("Initializing database...")
    init_database()

    patients = PatientRepository()
    drugs = DrugRepository()
    router = VisitRouter()

    print("Creating patients...")
    for patient in MOCK_PATIENTS:
        if patients.get_by_id(patient.id):
            print(f"  Skipping {patient.full_name} (already exists)")
            continue
        patients.create(patient)
        print(f"  Created {patient.full_name}")

    print("Creating drugs...")
    for drug in MOCK_DRUGS:
        if drugs.get_by_id(drug.id):
            print(f"  Skipping {drug.name} (already exists)")
            continue
        drugs.create(drug)
        print(f"  Created {drug.name}")

    print("Creating visits...")
    visits = [
        router.admit(IntakeForm(
            patient_id=patient.id,
            created_by=FRONTDESK_ID,
            assigned_doctor_id=DOCTOR_ID,
            temperature=37.8,
            pulse_rate=88,
            chief_complaint=complaint,
        ))
        for patient, complaint in zip(MOCK_PATIENTS, ["Fever", "Cough", "Headache"])
    ]

    # Second visit goes through the lab, third is ready for the pharmacy
    router.route_visit(visits[1].id, Role.DOCTOR, "lab", ConsultationPayload(notes="Rule out malaria"))
    router.record_lab_result(visits[1].id, Role.LAB, LabResultForm(
        test_name="Malaria RDT", test_result="Negative", performed_by=LAB_ID,
    ))
    router.route_visit(visits[2].id, Role.DOCTOR, "pharmacy", ConsultationPayload(
        diagnosis="Tension headache",
        prescriptions=[StagedPrescription(
            drug_id="d-002", dosage="1 tablet", frequency="3x daily", duration="5 days",
        )],
    ))

    print("\nDatabase seeded successfully!")
    print(f"  - {len(MOCK_PATIENTS)} patients")
    print(f"  - {len(MOCK_DRUGS)} drugs")
    print(f"  - {len(visits)} visits")


if __name__ == "__main__":
    seed_database()
