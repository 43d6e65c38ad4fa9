"""Runtime configuration loaded from the environment / .env file."""

import os
from decimal import Decimal
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(override=True)

DEFAULT_DB_PATH = Path(__file__).parent / "hospital" / "patient_flow.db"

DB_PATH = Path(os.getenv("PATIENT_FLOW_DB_PATH", str(DEFAULT_DB_PATH)))

# Billing policy (currency units, two decimal places)
CONSULTATION_FEE = Decimal(os.getenv("CONSULTATION_FEE", "100.00"))
LAB_TEST_FEE = Decimal(os.getenv("LAB_TEST_FEE", "50.00"))

LOG_LEVEL = os.getenv("PATIENT_FLOW_LOG_LEVEL", "INFO").upper()
