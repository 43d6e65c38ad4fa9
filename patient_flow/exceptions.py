"""Errors raised by the visit router, billing and stock ledger."""


class PatientFlowError(Exception):
    """Base exception for patient flow errors."""
    pass


class RoutingError(PatientFlowError):
    """Raised when a visit transition is rejected."""

    def __init__(self, visit_id: str | None, reason: str):
        self.visit_id = visit_id
        self.reason = reason
        super().__init__(f"Cannot route visit '{visit_id}': {reason}")


class StockError(PatientFlowError):
    """Base exception for stock ledger errors."""
    pass


class InsufficientStock(StockError):
    """Raised when dispensing more units than are in stock."""

    def __init__(self, drug_id: str, requested: int, available: int):
        self.drug_id = drug_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for drug '{drug_id}': "
            f"requested {requested}, available {available}"
        )


class UnknownDrug(StockError):
    """Raised when a drug id is not in the catalog."""

    def __init__(self, drug_id: str):
        self.drug_id = drug_id
        super().__init__(f"Drug '{drug_id}' not found")


class PersistenceError(PatientFlowError):
    """Wraps a storage failure and names the sub-operation that failed."""

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause}")
