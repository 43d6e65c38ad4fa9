"""Visit repository: routed visits, prescriptions, and lab results."""

import sqlite3
import uuid
from datetime import datetime

from patient_flow.exceptions import PersistenceError

from .connection import transaction
from .drug_repository import DrugRepository
from .models import LabResult, Location, Prescription, Visit, VisitStatus
from .patient_repository import PatientRepository


class VisitRepository:
    """Repository for patient visits and the records attached to them."""

    # Fields the router may write on a visit
    VISIT_FIELDS = [
        "status", "current_location", "assigned_doctor_id",
        "diagnosis", "notes", "completed_at",
    ]

    VITAL_FIELDS = [
        "weight", "blood_pressure_systolic", "blood_pressure_diastolic",
        "temperature", "pulse_rate", "respiratory_rate",
    ]

    def __init__(self):
        self._patients = PatientRepository()
        self._drugs = DrugRepository()

    # Visit methods

    def create_visit(
        self,
        patient_id: str,
        created_by: str,
        assigned_doctor_id: str | None = None,
        chief_complaint: str | None = None,
        vitals: dict | None = None,
        status: VisitStatus = VisitStatus.IN_CONSULTATION,
        current_location: Location = Location.DOCTOR,
    ) -> Visit:
        """Create a new visit record."""
        vitals = {k: v for k, v in (vitals or {}).items() if k in self.VITAL_FIELDS}
        visit_id = str(uuid.uuid4())
        now = datetime.now().isoformat()

        columns = [
            "id", "patient_id", "created_by", "assigned_doctor_id", "chief_complaint",
            "status", "current_location", "visit_date", "created_at", "updated_at",
        ] + list(vitals)
        values = [
            visit_id, patient_id, created_by, assigned_doctor_id, chief_complaint,
            status.value, current_location.value, now, now, now,
        ] + list(vitals.values())
        placeholders = ", ".join("?" for _ in columns)

        with transaction("create_visit") as conn:
            conn.execute(
                f"INSERT INTO patient_visits ({', '.join(columns)}) VALUES ({placeholders})",
                values,
            )

        return Visit(
            id=visit_id,
            patient_id=patient_id,
            created_by=created_by,
            visit_date=now,
            status=status,
            current_location=current_location,
            assigned_doctor_id=assigned_doctor_id,
            chief_complaint=chief_complaint,
            created_at=now,
            updated_at=now,
            **vitals,
        )

    def get_visit(self, visit_id: str) -> Visit | None:
        """Get a visit with its patient, prescriptions (with drug) and lab results."""
        with transaction("get_visit") as conn:
            row = conn.execute(
                "SELECT * FROM patient_visits WHERE id = ?", (visit_id,)
            ).fetchone()
        if not row:
            return None

        visit = self._row_to_visit(row)
        visit.patient = self._patients.get_by_id(visit.patient_id)
        visit.prescriptions = self.get_prescriptions(visit_id)
        visit.lab_results = self.get_lab_results(visit_id)
        return visit

    def find_visits_by_location(self, location: Location) -> list[Visit]:
        """Open visits at a department, oldest first."""
        with transaction("find_visits_by_location") as conn:
            rows = conn.execute(
                """SELECT * FROM patient_visits
                   WHERE current_location = ? AND status != ?
                   ORDER BY visit_date ASC, created_at ASC, rowid ASC""",
                (location.value, VisitStatus.COMPLETED.value),
            ).fetchall()

        visits = [self._row_to_visit(row) for row in rows]
        for visit in visits:
            visit.patient = self._patients.get_by_id(visit.patient_id)
        return visits

    def get_patient_visits(self, patient_id: str) -> list[Visit]:
        """Visit history for a patient, newest first."""
        with transaction("get_patient_visits") as conn:
            rows = conn.execute(
                "SELECT * FROM patient_visits WHERE patient_id = ? ORDER BY visit_date DESC",
                (patient_id,),
            ).fetchall()
        return [self._row_to_visit(row) for row in rows]

    def get_all_visits(self, limit: int = 100) -> list[Visit]:
        """Most recent visits across all departments."""
        with transaction("get_all_visits") as conn:
            rows = conn.execute(
                "SELECT * FROM patient_visits ORDER BY visit_date DESC LIMIT ?",
                (limit,),
            ).fetchall()
        return [self._row_to_visit(row) for row in rows]

    def update_visit(
        self,
        visit_id: str,
        updates: dict,
        prescriptions: list[dict] | tuple = (),
    ) -> Visit | None:
        """
        Update visit fields and create prescriptions in one transaction.

        Each prescription dict carries drug_id, dosage, frequency, duration
        and optionally notes. If any write fails nothing is kept, and the
        raised PersistenceError names the write that failed.
        """
        valid_updates = {}
        for field, value in updates.items():
            if field not in self.VISIT_FIELDS:
                continue
            if isinstance(value, (Location, VisitStatus)):
                value = value.value
            valid_updates[field] = value

        now = datetime.now().isoformat()
        with transaction("update_visit") as conn:
            if valid_updates:
                set_clause = ", ".join(f"{field} = ?" for field in valid_updates)
                set_clause += ", updated_at = ?"
                values = list(valid_updates.values()) + [now, visit_id]
                cursor = conn.execute(
                    f"UPDATE patient_visits SET {set_clause} WHERE id = ?", values
                )
                if cursor.rowcount == 0:
                    return None

            for item in prescriptions:
                self._insert_prescription(conn, visit_id, item, now)

        return self.get_visit(visit_id)

    # Prescription methods

    def create_prescription(
        self,
        visit_id: str,
        drug_id: str,
        dosage: str,
        frequency: str,
        duration: str,
        notes: str | None = None,
    ) -> Prescription:
        """Create a single prescription for a visit."""
        now = datetime.now().isoformat()
        item = {
            "drug_id": drug_id,
            "dosage": dosage,
            "frequency": frequency,
            "duration": duration,
            "notes": notes,
        }
        with transaction("create_prescription") as conn:
            prescription_id = self._insert_prescription(conn, visit_id, item, now)

        return Prescription(
            id=prescription_id,
            visit_id=visit_id,
            drug_id=drug_id,
            dosage=dosage,
            frequency=frequency,
            duration=duration,
            notes=notes,
            created_at=now,
            drug=self._drugs.get_by_id(drug_id),
        )

    def get_prescriptions(self, visit_id: str) -> list[Prescription]:
        """Prescriptions for a visit in creation order, with the drug resolved."""
        with transaction("get_prescriptions") as conn:
            rows = conn.execute(
                "SELECT * FROM prescriptions WHERE visit_id = ? ORDER BY created_at ASC, rowid ASC",
                (visit_id,),
            ).fetchall()

        prescriptions = [self._row_to_prescription(row) for row in rows]
        for prescription in prescriptions:
            prescription.drug = self._drugs.get_by_id(prescription.drug_id)
        return prescriptions

    # Lab result methods

    def create_lab_result(
        self,
        visit_id: str,
        test_name: str,
        test_result: str,
        performed_by: str,
        reference_range: str | None = None,
        notes: str | None = None,
    ) -> LabResult:
        """Append a lab result to a visit."""
        result_id = str(uuid.uuid4())
        now = datetime.now().isoformat()

        with transaction("create_lab_result") as conn:
            conn.execute("""
                INSERT INTO lab_results (
                    id, visit_id, test_name, test_result, reference_range,
                    notes, performed_by, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                result_id, visit_id, test_name, test_result, reference_range,
                notes, performed_by, now,
            ))

        return LabResult(
            id=result_id,
            visit_id=visit_id,
            test_name=test_name,
            test_result=test_result,
            performed_by=performed_by,
            reference_range=reference_range,
            notes=notes,
            created_at=now,
        )

    def get_lab_results(self, visit_id: str) -> list[LabResult]:
        """Lab results for a visit in creation order."""
        with transaction("get_lab_results") as conn:
            rows = conn.execute(
                "SELECT * FROM lab_results WHERE visit_id = ? ORDER BY created_at ASC, rowid ASC",
                (visit_id,),
            ).fetchall()
        return [self._row_to_lab_result(row) for row in rows]

    # Reporting

    def get_statistics(self) -> dict:
        """Counts for the admin overview."""
        with transaction("get_statistics") as conn:
            total_patients = conn.execute("SELECT COUNT(*) FROM patients").fetchone()[0]
            total_visits = conn.execute("SELECT COUNT(*) FROM patient_visits").fetchone()[0]
            total_drugs = conn.execute("SELECT COUNT(*) FROM drugs").fetchone()[0]
            rows = conn.execute(
                """SELECT current_location, COUNT(*) AS n FROM patient_visits
                   WHERE status != ? GROUP BY current_location""",
                (VisitStatus.COMPLETED.value,),
            ).fetchall()

        open_by_location = {location.value: 0 for location in Location}
        for row in rows:
            open_by_location[row["current_location"]] = row["n"]

        return {
            "total_patients": total_patients,
            "total_visits": total_visits,
            "total_drugs": total_drugs,
            "open_visits": open_by_location,
        }

    # Private helpers

    def _insert_prescription(self, conn, visit_id: str, item: dict, created_at: str) -> str:
        """Insert one prescription row inside an open transaction."""
        prescription_id = str(uuid.uuid4())
        try:
            conn.execute("""
                INSERT INTO prescriptions (
                    id, visit_id, drug_id, dosage, frequency, duration, notes, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                prescription_id, visit_id, item["drug_id"], item["dosage"],
                item["frequency"], item["duration"], item.get("notes"), created_at,
            ))
        except sqlite3.Error as e:
            raise PersistenceError("create_prescription", e) from e
        return prescription_id

    def _row_to_visit(self, row) -> Visit:
        """Convert a database row to a Visit object."""
        return Visit(
            id=row["id"],
            patient_id=row["patient_id"],
            created_by=row["created_by"],
            visit_date=row["visit_date"],
            status=VisitStatus(row["status"]),
            current_location=Location(row["current_location"]),
            assigned_doctor_id=row["assigned_doctor_id"],
            weight=row["weight"],
            blood_pressure_systolic=row["blood_pressure_systolic"],
            blood_pressure_diastolic=row["blood_pressure_diastolic"],
            temperature=row["temperature"],
            pulse_rate=row["pulse_rate"],
            respiratory_rate=row["respiratory_rate"],
            chief_complaint=row["chief_complaint"],
            diagnosis=row["diagnosis"],
            notes=row["notes"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
            completed_at=row["completed_at"],
        )

    def _row_to_prescription(self, row) -> Prescription:
        """Convert a database row to a Prescription object."""
        return Prescription(
            id=row["id"],
            visit_id=row["visit_id"],
            drug_id=row["drug_id"],
            dosage=row["dosage"],
            frequency=row["frequency"],
            duration=row["duration"],
            notes=row["notes"],
            created_at=row["created_at"],
        )

    def _row_to_lab_result(self, row) -> LabResult:
        """Convert a database row to a LabResult object."""
        return LabResult(
            id=row["id"],
            visit_id=row["visit_id"],
            test_name=row["test_name"],
            test_result=row["test_result"],
            performed_by=row["performed_by"],
            reference_range=row["reference_range"],
            notes=row["notes"],
            created_at=row["created_at"],
        )
