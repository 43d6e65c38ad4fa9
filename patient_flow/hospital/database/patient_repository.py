"""Patient repository for front-desk registration and search."""

import uuid
from datetime import datetime

from .connection import transaction
from .models import Patient


class PatientRepository:
    """Repository for patient CRUD and search."""

    # Fields that can be updated
    PATIENT_FIELDS = [
        "first_name", "last_name", "phone_number", "date_of_birth", "gender",
        "address", "emergency_contact", "blood_type", "allergies",
    ]

    SEARCH_LIMIT = 20

    def create(self, patient: Patient) -> Patient:
        """Register a new patient."""
        patient.id = patient.id or str(uuid.uuid4())
        now = datetime.now().isoformat()

        with transaction("create_patient") as conn:
            conn.execute("""
                INSERT INTO patients (
                    id, first_name, last_name, phone_number, date_of_birth, gender,
                    address, emergency_contact, blood_type, allergies,
                    created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                patient.id, patient.first_name, patient.last_name,
                patient.phone_number, patient.date_of_birth, patient.gender,
                patient.address, patient.emergency_contact, patient.blood_type,
                patient.allergies, now, now,
            ))

        patient.created_at = now
        patient.updated_at = now
        return patient

    def get_by_id(self, patient_id: str) -> Patient | None:
        """Get a patient by ID."""
        with transaction("get_patient") as conn:
            row = conn.execute(
                "SELECT * FROM patients WHERE id = ?", (patient_id,)
            ).fetchone()
        return self._row_to_patient(row) if row else None

    def update(self, patient_id: str, updates: dict) -> Patient | None:
        """Update patient fields; unknown fields are ignored."""
        valid_updates = {
            field: value for field, value in updates.items()
            if field in self.PATIENT_FIELDS
        }
        if valid_updates:
            set_clause = ", ".join(f"{field} = ?" for field in valid_updates)
            set_clause += ", updated_at = ?"
            values = list(valid_updates.values()) + [datetime.now().isoformat(), patient_id]
            with transaction("update_patient") as conn:
                conn.execute(f"UPDATE patients SET {set_clause} WHERE id = ?", values)
        return self.get_by_id(patient_id)

    def search(self, query: str) -> list[Patient]:
        """Find patients whose first name, last name or phone contains `query`."""
        pattern = f"%{query.strip()}%"
        with transaction("search_patients") as conn:
            rows = conn.execute(
                """SELECT * FROM patients
                   WHERE first_name LIKE ? OR last_name LIKE ? OR phone_number LIKE ?
                   ORDER BY last_name, first_name
                   LIMIT ?""",
                (pattern, pattern, pattern, self.SEARCH_LIMIT),
            ).fetchall()
        return [self._row_to_patient(row) for row in rows]

    def _row_to_patient(self, row) -> Patient:
        """Convert a database row to a Patient object."""
        return Patient(
            id=row["id"],
            first_name=row["first_name"],
            last_name=row["last_name"],
            phone_number=row["phone_number"],
            date_of_birth=row["date_of_birth"],
            gender=row["gender"],
            address=row["address"],
            emergency_contact=row["emergency_contact"],
            blood_type=row["blood_type"],
            allergies=row["allergies"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
