from .connection import get_connection, init_database, transaction
from .drug_repository import DrugRepository
from .patient_repository import PatientRepository
from .visit_repository import VisitRepository

__all__ = [
    "get_connection",
    "init_database",
    "transaction",
    "DrugRepository",
    "PatientRepository",
    "VisitRepository",
]
