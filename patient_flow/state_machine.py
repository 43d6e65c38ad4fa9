"""State machine routing a patient visit between hospital departments."""

import logging
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ValidationError

from patient_flow.exceptions import RoutingError
from patient_flow.forms import (
    CloseOutPayload,
    ConsultationPayload,
    DoctorAssignment,
    IntakeForm,
    LabResultForm,
)
from patient_flow.hospital.database.models import LabResult, Location, Visit, VisitStatus
from patient_flow.hospital.database.visit_repository import VisitRepository

logger = logging.getLogger(__name__)


class Role(Enum):
    """Staff roles. Every role except admin operates one department."""
    FRONTDESK = "frontdesk"
    DOCTOR = "doctor"
    LAB = "lab"
    PHARMACY = "pharmacy"
    ACCOUNTS = "accounts"
    ADMIN = "admin"


INITIAL_STATUS = VisitStatus.IN_CONSULTATION
INITIAL_LOCATION = Location.DOCTOR

# Status a visit takes on when it arrives at a department
LOCATION_STATUS = {
    Location.FRONTDESK: VisitStatus.PENDING,
    Location.DOCTOR: VisitStatus.IN_CONSULTATION,
    Location.LAB: VisitStatus.LAB_REQUESTED,
    Location.PHARMACY: VisitStatus.PHARMACY_REQUESTED,
    Location.ACCOUNTS: VisitStatus.BILLING,
}

# Legal targets from each location; None closes the visit
TRANSITIONS = {
    Location.FRONTDESK: [Location.DOCTOR],
    Location.DOCTOR: [Location.FRONTDESK, Location.LAB, Location.PHARMACY, Location.ACCOUNTS],
    Location.LAB: [Location.DOCTOR, Location.FRONTDESK],
    Location.PHARMACY: [Location.ACCOUNTS],
    Location.ACCOUNTS: [None],
}

# Payload model expected from the actor at each location
PAYLOADS = {
    Location.FRONTDESK: DoctorAssignment,
    Location.DOCTOR: ConsultationPayload,
    Location.ACCOUNTS: CloseOutPayload,
}


def allowed_targets(location: Location) -> list[Location | None]:
    """Where a visit at `location` may be sent next."""
    return list(TRANSITIONS.get(location, []))


def next_status(target: Location | None) -> VisitStatus:
    """Status a visit gets when routed to `target` (None = close out)."""
    if target is None:
        return VisitStatus.COMPLETED
    return LOCATION_STATUS[target]


def _as_role(actor_role, visit_id: str | None = None) -> Role:
    try:
        return actor_role if isinstance(actor_role, Role) else Role(actor_role)
    except ValueError:
        raise RoutingError(visit_id, f"unknown role '{actor_role}'") from None


def _as_location(target, visit_id: str | None = None) -> Location | None:
    if target is None or isinstance(target, Location):
        return target
    try:
        return Location(target)
    except ValueError:
        raise RoutingError(visit_id, f"unknown location '{target}'") from None


class VisitRouter:
    """Validates and applies visit transitions for department actors."""

    def __init__(self, visit_repo: VisitRepository | None = None):
        self.visits = visit_repo or VisitRepository()

    def admit(self, form: IntakeForm) -> Visit:
        """Front-desk intake: open a visit and send it straight to the doctor."""
        if not form.assigned_doctor_id:
            self._reject(None, "a doctor must be selected before admitting a patient")

        visit = self.visits.create_visit(
            patient_id=form.patient_id,
            created_by=form.created_by,
            assigned_doctor_id=form.assigned_doctor_id,
            chief_complaint=form.chief_complaint,
            vitals=form.vitals(),
            status=INITIAL_STATUS,
            current_location=INITIAL_LOCATION,
        )
        logger.info("Admitted patient %s as visit %s", form.patient_id, visit.id)
        return visit

    def queue(self, location) -> list[Visit]:
        """Open visits waiting at a department, oldest first."""
        return self.visits.find_visits_by_location(_as_location(location))

    def route_visit(self, visit_id: str, actor_role, target_location, payload=None) -> Visit:
        """
        Move a visit to `target_location` on behalf of `actor_role`.

        Only the department currently holding the visit may move it, and
        only along TRANSITIONS. Doctor transitions also save the diagnosis
        and notes and create one prescription per complete pad entry, all
        in a single commit.

        Args:
            visit_id: Visit to move
            actor_role: Role (or its value) of the acting department
            target_location: Location (or its value); None to close the visit
            payload: ConsultationPayload (doctor), DoctorAssignment (front
                desk) or CloseOutPayload (accounts), as model or dict

        Returns:
            The updated visit

        Raises:
            RoutingError: rejected; the visit is left unchanged
            PersistenceError: the store failed; nothing was committed
        """
        role = _as_role(actor_role, visit_id)
        target = _as_location(target_location, visit_id)
        visit = self._load_for_actor(visit_id, role)
        source = visit.current_location

        if target not in TRANSITIONS[source]:
            destination = target.value if target else "completion"
            self._reject(visit_id, f"cannot go from {source.value} to {destination}")

        payload = self._coerce_payload(visit_id, source, payload)
        updates = {
            "status": next_status(target),
            "current_location": target or source,
        }
        prescriptions = []

        if source == Location.FRONTDESK:
            doctor_id = payload.assigned_doctor_id or visit.assigned_doctor_id
            if not doctor_id:
                self._reject(visit_id, "no doctor selected")
            updates["assigned_doctor_id"] = doctor_id

        elif source == Location.DOCTOR:
            if payload.diagnosis is not None:
                updates["diagnosis"] = payload.diagnosis
            if payload.notes is not None:
                updates["notes"] = payload.notes
            prescriptions = [
                item.model_dump(include={"drug_id", "dosage", "frequency", "duration", "notes"})
                for item in payload.prescriptions.ready()
            ]

        elif source == Location.ACCOUNTS:
            if not payload.payment_accepted:
                self._reject(visit_id, "payment has not been accepted")
            updates["completed_at"] = datetime.now().isoformat()

        updated = self.visits.update_visit(visit_id, updates, prescriptions)
        if updated is None:
            self._reject(visit_id, "visit not found")

        logger.info(
            "Visit %s: %s -> %s (%s), %d prescription(s)",
            visit_id, source.value, updated.current_location.value,
            updated.status.value, len(prescriptions),
        )
        return updated

    def complete_visit(self, visit_id: str, actor_role, payment_accepted: bool) -> Visit:
        """Accounts close-out after payment."""
        return self.route_visit(
            visit_id, actor_role, None,
            CloseOutPayload(payment_accepted=payment_accepted),
        )

    def record_lab_result(self, visit_id: str, actor_role, form: LabResultForm) -> LabResult:
        """Append a lab result to a visit currently at the lab."""
        role = _as_role(actor_role, visit_id)
        if role != Role.LAB:
            self._reject(visit_id, f"{role.value} cannot record lab results")
        self._load_for_actor(visit_id, role)

        result = self.visits.create_lab_result(
            visit_id=visit_id,
            test_name=form.test_name,
            test_result=form.test_result,
            performed_by=form.performed_by,
            reference_range=form.reference_range,
            notes=form.notes,
        )
        logger.info("Visit %s: recorded lab result '%s'", visit_id, form.test_name)
        return result

    def _load_for_actor(self, visit_id: str, role: Role) -> Visit:
        """Fetch a visit and check that `role` currently holds it."""
        visit = self.visits.get_visit(visit_id)
        if visit is None:
            self._reject(visit_id, "visit not found")
        if visit.is_completed:
            self._reject(visit_id, "visit is already completed")
        if role.value != visit.current_location.value:
            self._reject(
                visit_id,
                f"visit is at {visit.current_location.value}, not {role.value}",
            )
        return visit

    def _coerce_payload(self, visit_id: str, source: Location, payload) -> BaseModel | None:
        model = PAYLOADS.get(source)
        if model is None:
            return None
        if payload is None:
            return model()
        if isinstance(payload, model):
            return payload
        if isinstance(payload, dict):
            try:
                return model.model_validate(payload)
            except ValidationError as e:
                self._reject(visit_id, f"invalid payload: {e.error_count()} error(s)")
        self._reject(visit_id, f"expected {model.__name__} from {source.value}")

    def _reject(self, visit_id: str | None, reason: str):
        logger.warning("Rejected transition for visit %s: %s", visit_id, reason)
        raise RoutingError(visit_id, reason)
