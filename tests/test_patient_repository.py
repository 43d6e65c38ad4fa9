"""Tests for patient repository functionality."""

from patient_flow.hospital.database.models import Patient


def _patient(id, first, last, phone):
    return Patient(
        id=id,
        first_name=first,
        last_name=last,
        phone_number=phone,
        date_of_birth="1980-05-05",
        gender="male",
    )


class TestPatientCRUD:
    """Tests for patient CRUD operations."""

    def test_create_patient(self, patient_repo):
        created = patient_repo.create(_patient("p-create", "Create", "Test", "555-0200"))
        assert created.id == "p-create"
        assert created.created_at is not None

    def test_create_generates_id(self, patient_repo):
        created = patient_repo.create(_patient("", "No", "Id", "555-0201"))
        assert created.id

    def test_get_by_id(self, patient_repo, patient):
        found = patient_repo.get_by_id(patient.id)
        assert found.first_name == "Test"
        assert found.full_name == "Test Patient"

    def test_get_by_id_not_found(self, patient_repo):
        assert patient_repo.get_by_id("nonexistent-id") is None

    def test_update_patient(self, patient_repo, patient):
        updated = patient_repo.update(patient.id, {"allergies": "Sulfa", "id": "hijack"})
        assert updated.id == patient.id
        assert updated.allergies == "Sulfa"


class TestSearchPatients:
    """Tests for front-desk patient search."""

    def test_by_name_case_insensitive(self, patient_repo):
        patient_repo.create(_patient("p-1", "Chinedu", "Obi", "0803-1"))
        patient_repo.create(_patient("p-2", "Amaka", "Obiora", "0803-2"))
        patient_repo.create(_patient("p-3", "Sam", "Jones", "0803-3"))
        found = patient_repo.search("obi")
        assert {p.id for p in found} == {"p-1", "p-2"}

    def test_by_phone(self, patient_repo, patient):
        assert [p.id for p in patient_repo.search("0100")] == [patient.id]

    def test_no_match(self, patient_repo, patient):
        assert patient_repo.search("zzz") == []

    def test_limit(self, patient_repo):
        for i in range(25):
            patient_repo.create(_patient(f"p-{i}", "Same", "Name", f"0700-{i}"))
        assert len(patient_repo.search("Same")) == patient_repo.SEARCH_LIMIT
