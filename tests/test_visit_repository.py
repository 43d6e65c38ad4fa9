"""Tests for the VisitRepository class."""

import pytest

from patient_flow.exceptions import PersistenceError
from patient_flow.hospital.database.connection import get_connection
from patient_flow.hospital.database.models import Location, VisitStatus


def _set_visit_date(visit_id, visit_date):
    conn = get_connection()
    conn.execute("UPDATE patient_visits SET visit_date = ? WHERE id = ?", (visit_date, visit_id))
    conn.commit()
    conn.close()


class TestCreateVisit:

    def test_vitals_stored(self, visit_repo, patient):
        created = visit_repo.create_visit(
            patient_id=patient.id,
            created_by="u-frontdesk",
            assigned_doctor_id="u-doctor",
            vitals={"weight": 70.5, "pulse_rate": 72, "shoe_size": 44},
        )
        visit = visit_repo.get_visit(created.id)
        assert visit.weight == 70.5
        assert visit.pulse_rate == 72
        assert visit.temperature is None

    def test_sub_collections_default_empty(self, visit_repo, admitted_visit):
        visit = visit_repo.get_visit(admitted_visit.id)
        assert visit.prescriptions == []
        assert visit.lab_results == []
        assert visit.patient.last_name == "Patient"

    def test_get_missing_visit(self, visit_repo):
        assert visit_repo.get_visit("nonexistent") is None


class TestFindVisitsByLocation:
    """Queue ordering and filtering."""

    def test_oldest_first(self, visit_repo, patient):
        ids = [
            visit_repo.create_visit(patient.id, "u-frontdesk", current_location=Location.LAB,
                                    status=VisitStatus.LAB_REQUESTED).id
            for _ in range(3)
        ]
        # Created in order, but dated t3, t1, t2
        _set_visit_date(ids[0], "2024-01-01T11:00:00")
        _set_visit_date(ids[1], "2024-01-01T09:00:00")
        _set_visit_date(ids[2], "2024-01-01T10:00:00")

        queue = visit_repo.find_visits_by_location(Location.LAB)
        assert [v.id for v in queue] == [ids[1], ids[2], ids[0]]

    def test_excludes_completed_and_other_locations(self, visit_repo, patient):
        open_visit = visit_repo.create_visit(
            patient.id, "u-frontdesk", status=VisitStatus.BILLING, current_location=Location.ACCOUNTS,
        )
        visit_repo.create_visit(
            patient.id, "u-frontdesk", status=VisitStatus.COMPLETED, current_location=Location.ACCOUNTS,
        )
        visit_repo.create_visit(patient.id, "u-frontdesk")

        queue = visit_repo.find_visits_by_location(Location.ACCOUNTS)
        assert [v.id for v in queue] == [open_visit.id]


class TestUpdateVisit:

    def test_updates_fields(self, visit_repo, admitted_visit):
        visit = visit_repo.update_visit(admitted_visit.id, {
            "status": VisitStatus.LAB_REQUESTED,
            "current_location": Location.LAB,
            "diagnosis": "Typhoid",
        })
        assert visit.status == VisitStatus.LAB_REQUESTED
        assert visit.current_location == Location.LAB
        assert visit.diagnosis == "Typhoid"

    def test_ignores_unknown_fields(self, visit_repo, admitted_visit):
        visit = visit_repo.update_visit(admitted_visit.id, {"patient_id": "someone-else"})
        assert visit.patient_id == admitted_visit.patient_id

    def test_missing_visit(self, visit_repo):
        assert visit_repo.update_visit("nonexistent", {"diagnosis": "x"}) is None

    def test_with_prescriptions(self, visit_repo, admitted_visit, make_drug):
        a, b = make_drug(name="A"), make_drug(name="B")
        visit = visit_repo.update_visit(
            admitted_visit.id,
            {"current_location": Location.PHARMACY, "status": VisitStatus.PHARMACY_REQUESTED},
            [
                {"drug_id": b.id, "dosage": "1", "frequency": "daily", "duration": "2 days"},
                {"drug_id": a.id, "dosage": "2", "frequency": "daily", "duration": "3 days"},
            ],
        )
        assert [p.drug.name for p in visit.prescriptions] == ["B", "A"]

    def test_failed_prescription_rolls_back(self, visit_repo, admitted_visit):
        with pytest.raises(PersistenceError) as exc:
            visit_repo.update_visit(
                admitted_visit.id,
                {"current_location": Location.PHARMACY, "status": VisitStatus.PHARMACY_REQUESTED},
                [{"drug_id": "missing", "dosage": "1", "frequency": "daily", "duration": "2 days"}],
            )
        assert exc.value.operation == "create_prescription"
        assert visit_repo.get_visit(admitted_visit.id).current_location == Location.DOCTOR


class TestPrescriptionsAndLabResults:

    def test_create_prescription(self, visit_repo, admitted_visit, make_drug):
        drug = make_drug()
        prescription = visit_repo.create_prescription(
            admitted_visit.id, drug.id, "500mg", "3x daily", "7 days",
        )
        assert prescription.drug.id == drug.id
        assert visit_repo.get_prescriptions(admitted_visit.id)[0].id == prescription.id

    def test_create_prescription_unknown_drug(self, visit_repo, admitted_visit):
        with pytest.raises(PersistenceError):
            visit_repo.create_prescription(admitted_visit.id, "missing", "1", "daily", "1 day")

    def test_lab_results_in_creation_order(self, visit_repo, admitted_visit):
        for name in ("FBC", "Urinalysis", "Malaria RDT"):
            visit_repo.create_lab_result(admitted_visit.id, name, "Normal", "u-lab")
        results = visit_repo.get_lab_results(admitted_visit.id)
        assert [r.test_name for r in results] == ["FBC", "Urinalysis", "Malaria RDT"]

    def test_lab_result_optional_fields(self, visit_repo, admitted_visit):
        result = visit_repo.create_lab_result(
            admitted_visit.id, "Glucose", "5.2", "u-lab",
            reference_range="3.9-5.6 mmol/L",
        )
        assert result.reference_range == "3.9-5.6 mmol/L"
        assert result.notes is None


class TestHistoryAndStatistics:

    def test_patient_visits_newest_first(self, visit_repo, patient):
        first = visit_repo.create_visit(patient.id, "u-frontdesk")
        second = visit_repo.create_visit(patient.id, "u-frontdesk")
        _set_visit_date(first.id, "2024-01-01T09:00:00")
        _set_visit_date(second.id, "2024-02-01T09:00:00")
        history = visit_repo.get_patient_visits(patient.id)
        assert [v.id for v in history] == [second.id, first.id]

    def test_all_visits_limit(self, visit_repo, patient):
        for _ in range(3):
            visit_repo.create_visit(patient.id, "u-frontdesk")
        assert len(visit_repo.get_all_visits(limit=2)) == 2

    def test_statistics(self, visit_repo, admitted_visit, make_drug):
        make_drug()
        stats = visit_repo.get_statistics()
        assert stats["total_patients"] == 1
        assert stats["total_visits"] == 1
        assert stats["total_drugs"] == 1
        assert stats["open_visits"]["doctor"] == 1
        assert stats["open_visits"]["lab"] == 0
