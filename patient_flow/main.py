"""Department console: a terminal front end over the visit routing core."""

import logging
import shlex
import sys
from dataclasses import dataclass, field

from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from patient_flow import config
from patient_flow.billing import compute_invoice
from patient_flow.exceptions import PatientFlowError
from patient_flow.forms import (
    ConsultationPayload,
    DrugForm,
    IntakeForm,
    LabResultForm,
    PatientForm,
    PrescriptionPad,
)
from patient_flow.hospital.database import (
    DrugRepository,
    PatientRepository,
    VisitRepository,
    init_database,
)
from patient_flow.hospital.database.models import StockStatus
from patient_flow.state_machine import Role, VisitRouter, allowed_targets
from patient_flow.stock_ledger import StockLedger

console = Console()
router = VisitRouter()
ledger = StockLedger()
drug_repo = DrugRepository()
visit_repo = VisitRepository()
patient_repo = PatientRepository()

STOCK_STYLES = {
    StockStatus.IN_STOCK: "green",
    StockStatus.LOW_STOCK: "yellow",
    StockStatus.OUT_OF_STOCK: "red",
}


@dataclass
class Session:
    """One operator at one department."""
    role: Role
    user_id: str = "console"
    # Doctor's unsent work, per visit
    pads: dict[str, PrescriptionPad] = field(default_factory=dict)
    diagnoses: dict[str, str] = field(default_factory=dict)


class UsageError(Exception):
    pass


def setup_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


def _need(args: list[str], count: int, usage: str) -> None:
    if len(args) < count:
        raise UsageError(f"usage: {usage}")


def _require(session: Session, role: Role, action: str) -> None:
    if session.role != role:
        raise UsageError(f"only {role.value} can {action}")


def handle_register(session: Session, args: list[str]) -> None:
    """Register a patient: register <first> <last> <phone> <YYYY-MM-DD> <male|female> [allergies]."""
    _need(args, 5, "register <first> <last> <phone> <date_of_birth> <gender> [allergies]")
    _require(session, Role.FRONTDESK, "register patients")
    form = PatientForm(
        first_name=args[0],
        last_name=args[1],
        phone_number=args[2],
        date_of_birth=args[3],
        gender=args[4].lower(),
        allergies=args[5] if len(args) > 5 else None,
    )
    patient = patient_repo.create(form.to_patient())
    console.print(f"[green]Registered {patient.full_name}[/green] [dim]{patient.id}[/dim]")


def handle_search(session: Session, args: list[str]) -> None:
    _need(args, 1, "search <name or phone>")
    patients = patient_repo.search(" ".join(args))

    table = Table(title="Patients")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Phone")
    table.add_column("Born")
    for patient in patients:
        table.add_row(patient.id, patient.full_name, patient.phone_number, patient.date_of_birth)
    console.print(table)


def handle_admit(session: Session, args: list[str]) -> None:
    """
    Open a visit and send it to a doctor.

    admit <patient_id> <doctor_id> [complaint] [vital=value ...]
    """
    _need(args, 2, "admit <patient_id> <doctor_id> [complaint] [vital=value ...]")
    _require(session, Role.FRONTDESK, "admit patients")
    vitals = dict(arg.split("=", 1) for arg in args[2:] if "=" in arg)
    complaint = " ".join(arg for arg in args[2:] if "=" not in arg)
    form = IntakeForm(
        patient_id=args[0],
        created_by=session.user_id,
        assigned_doctor_id=args[1],
        chief_complaint=complaint,
        **vitals,
    )
    if patient_repo.get_by_id(form.patient_id) is None:
        raise UsageError(f"patient {form.patient_id} not found")
    visit = router.admit(form)
    console.print(f"[green]Visit {visit.id} sent to the doctor[/green]")


def handle_queue(session: Session, args: list[str]) -> None:
    """List the department's open visits, oldest first."""
    if session.role == Role.ADMIN:
        raise UsageError("admin has no queue; try 'stats'")
    visits = router.queue(session.role.value)

    table = Table(title=f"{session.role.value} queue")
    table.add_column("#")
    table.add_column("Visit")
    table.add_column("Patient")
    table.add_column("Status")
    table.add_column("Since")
    for i, visit in enumerate(visits, 1):
        name = visit.patient.full_name if visit.patient else visit.patient_id
        table.add_row(str(i), visit.id, name, visit.status.value, visit.visit_date)
    console.print(table)


def handle_show(session: Session, args: list[str]) -> None:
    _need(args, 1, "show <visit_id>")
    visit = visit_repo.get_visit(args[0])
    if visit is None:
        raise UsageError(f"visit {args[0]} not found")

    patient = visit.patient.full_name if visit.patient else visit.patient_id
    console.print(f"[bold]{patient}[/bold] at [cyan]{visit.current_location.value}[/cyan] ({visit.status.value})")
    if visit.chief_complaint:
        console.print(f"Complaint: {visit.chief_complaint}")
    if visit.diagnosis:
        console.print(f"Diagnosis: {visit.diagnosis}")
    for result in visit.lab_results:
        console.print(f"  Lab: {result.test_name} = {result.test_result}")
    for prescription in visit.prescriptions:
        drug = prescription.drug.name if prescription.drug else prescription.drug_id
        console.print(f"  Rx: {drug} {prescription.dosage}, {prescription.frequency}, {prescription.duration}")
    targets = [t.value if t else "complete" for t in allowed_targets(visit.current_location)]
    console.print(f"[dim]Next: {', '.join(targets)}[/dim]")


def handle_diagnose(session: Session, args: list[str]) -> None:
    _need(args, 2, "diagnose <visit_id> <text>")
    session.diagnoses[args[0]] = " ".join(args[1:])


def handle_prescribe(session: Session, args: list[str]) -> None:
    """Stage a drug: prescribe <visit_id> <drug_id> <dosage> <frequency> <duration>."""
    _need(args, 2, "prescribe <visit_id> <drug_id> [dosage frequency duration]")
    visit_id, drug_id = args[0], args[1]
    pad = session.pads.setdefault(visit_id, PrescriptionPad())
    pad.add(drug_id)
    for name, value in zip(("dosage", "frequency", "duration"), args[2:5]):
        pad.set_field(drug_id, name, value)
    console.print(f"{len(pad.ready())} of {len(pad)} staged drug(s) ready")


def handle_send(session: Session, args: list[str]) -> None:
    _need(args, 2, "send <visit_id> <location>")
    visit_id, target = args[0], args[1]

    payload = None
    if session.role == Role.DOCTOR:
        payload = ConsultationPayload(
            diagnosis=session.diagnoses.get(visit_id),
            prescriptions=session.pads.get(visit_id, PrescriptionPad()),
        )
    elif session.role == Role.FRONTDESK and len(args) > 2:
        payload = {"assigned_doctor_id": args[2]}

    visit = router.route_visit(visit_id, session.role, target, payload)
    session.pads.pop(visit_id, None)
    session.diagnoses.pop(visit_id, None)
    console.print(f"[green]Sent to {visit.current_location.value}[/green] ({visit.status.value})")


def handle_lab(session: Session, args: list[str]) -> None:
    _need(args, 3, "lab <visit_id> <test_name> <result> [reference_range]")
    form = LabResultForm(
        test_name=args[1],
        test_result=args[2],
        reference_range=args[3] if len(args) > 3 else None,
        performed_by=session.user_id,
    )
    router.record_lab_result(args[0], session.role, form)
    console.print(f"[green]Recorded {form.test_name}[/green]")


def handle_dispense(session: Session, args: list[str]) -> None:
    _need(args, 1, "dispense <drug_id> [quantity]")
    _require(session, Role.PHARMACY, "dispense drugs")
    quantity = int(args[1]) if len(args) > 1 else 1
    drug = ledger.dispense(args[0], quantity)
    style = STOCK_STYLES[drug.stock_status]
    console.print(f"Dispensed {quantity} x {drug.name}: [{style}]{drug.stock_quantity} {drug.unit} left[/{style}]")


def handle_inventory(session: Session, args: list[str]) -> None:
    table = Table(title="Inventory")
    table.add_column("Drug")
    table.add_column("Stock", justify="right")
    table.add_column("Sales price", justify="right")
    table.add_column("Status")
    for drug in drug_repo.get_inventory():
        style = STOCK_STYLES[drug.stock_status]
        table.add_row(
            f"{drug.name} [dim]{drug.id}[/dim]",
            f"{drug.stock_quantity} {drug.unit}",
            f"{drug.sales_price:.2f}",
            f"[{style}]{drug.stock_status.value.replace('_', ' ')}[/{style}]",
        )
    console.print(table)


def handle_add_drug(session: Session, args: list[str]) -> None:
    _need(args, 4, "add-drug <name> <purchase_price> <sales_price> <stock> [reorder_level] [unit]")
    _require(session, Role.PHARMACY, "edit the catalog")
    form = DrugForm(
        name=args[0],
        purchase_price=args[1],
        sales_price=args[2],
        stock_quantity=args[3],
        reorder_level=args[4] if len(args) > 4 else 0,
        unit=args[5] if len(args) > 5 else "unit",
    )
    drug = drug_repo.create(form.to_drug())
    console.print(f"[green]Added {drug.name}[/green] [dim]{drug.id}[/dim]")


def handle_set_stock(session: Session, args: list[str]) -> None:
    """Stock count correction: set-stock <drug_id> <quantity>."""
    _need(args, 2, "set-stock <drug_id> <quantity>")
    _require(session, Role.PHARMACY, "edit the catalog")
    quantity = int(args[1])
    if quantity < 0:
        raise UsageError("stock cannot be negative")
    drug = drug_repo.update(args[0], {"stock_quantity": quantity})
    if drug is None:
        raise UsageError(f"drug {args[0]} not found")
    console.print(f"{drug.name}: {drug.stock_quantity} {drug.unit} in stock")


def handle_remove_drug(session: Session, args: list[str]) -> None:
    _need(args, 1, "remove-drug <drug_id>")
    _require(session, Role.PHARMACY, "edit the catalog")
    if not drug_repo.delete(args[0]):
        raise UsageError(f"drug {args[0]} not found")
    console.print(f"Removed {args[0]}")


def handle_invoice(session: Session, args: list[str]) -> None:
    _need(args, 1, "invoice <visit_id>")
    visit = visit_repo.get_visit(args[0])
    if visit is None:
        raise UsageError(f"visit {args[0]} not found")
    invoice = compute_invoice(visit)

    table = Table(title=f"Invoice {visit.id}")
    table.add_column("Item")
    table.add_column("Qty", justify="right")
    table.add_column("Unit", justify="right")
    table.add_column("Total", justify="right")
    for line in invoice.lines:
        table.add_row(line.name, str(line.quantity), f"{line.unit_price:.2f}", f"{line.total_price:.2f}")
    table.add_row("[bold]Total[/bold]", "", "", f"[bold]{invoice.total:.2f}[/bold]")
    console.print(table)


def handle_pay(session: Session, args: list[str]) -> None:
    _need(args, 1, "pay <visit_id>")
    router.complete_visit(args[0], session.role, payment_accepted=True)
    console.print("[green]Payment recorded, visit completed.[/green]")


def handle_stats(session: Session, args: list[str]) -> None:
    stats = visit_repo.get_statistics()
    console.print(
        f"Patients: {stats['total_patients']}  Visits: {stats['total_visits']}  "
        f"Drugs: {stats['total_drugs']}"
    )
    for location, count in stats["open_visits"].items():
        console.print(f"  {location}: {count} open")


COMMAND_HANDLERS = {
    "register": handle_register,
    "search": handle_search,
    "admit": handle_admit,
    "queue": handle_queue,
    "show": handle_show,
    "diagnose": handle_diagnose,
    "prescribe": handle_prescribe,
    "send": handle_send,
    "lab": handle_lab,
    "dispense": handle_dispense,
    "inventory": handle_inventory,
    "add-drug": handle_add_drug,
    "set-stock": handle_set_stock,
    "remove-drug": handle_remove_drug,
    "invoice": handle_invoice,
    "pay": handle_pay,
    "stats": handle_stats,
}


def process_command(session: Session, line: str) -> None:
    """Parse one console line and run its handler."""
    parts = shlex.split(line)
    if not parts:
        return
    handler = COMMAND_HANDLERS.get(parts[0].lower())
    if handler is None:
        raise UsageError(f"unknown command '{parts[0]}'; commands: {', '.join(COMMAND_HANDLERS)}")
    handler(session, parts[1:])


def choose_role() -> Role:
    roles = ", ".join(r.value for r in Role)
    while True:
        answer = console.input(f"[bold green]Department ({roles}):[/bold green] ").strip().lower()
        try:
            return Role(answer)
        except ValueError:
            console.print(f"[red]Unknown department '{answer}'[/red]")


def main():
    """Main console loop."""
    setup_logging()
    try:
        init_database()
    except PatientFlowError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        return

    console.print("[bold blue]Patient Flow[/bold blue]")
    console.print("Type 'quit' or 'exit' to leave.\n")

    is_tty = sys.stdin.isatty()

    try:
        session = Session(role=choose_role())
    except (EOFError, KeyboardInterrupt):
        console.print("\n[bold blue]Goodbye![/bold blue]")
        return

    while True:
        try:
            line = console.input(f"[bold cyan]{session.role.value}>[/bold cyan] ").strip()
            # Echo input when stdin is piped (not interactive)
            if not is_tty and line:
                console.print(f"[dim]{line}[/dim]")
        except (EOFError, KeyboardInterrupt):
            console.print("\n[bold blue]Goodbye![/bold blue]")
            break

        if line.lower() in ("quit", "exit"):
            console.print("[bold blue]Goodbye![/bold blue]")
            break

        try:
            process_command(session, line)
        except (PatientFlowError, UsageError, ValidationError, ValueError) as e:
            console.print(f"[bold red]Error:[/bold red] {e}\n")


if __name__ == "__main__":
    main()
