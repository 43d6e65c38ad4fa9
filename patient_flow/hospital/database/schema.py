"""
Patient Flow Database Schema
Supports patients, routed visits, prescriptions, lab results, and the drug catalog.
"""

SCHEMA = """
-- =============================================================================
-- 1. PATIENTS - Registered at the front desk
-- =============================================================================
CREATE TABLE IF NOT EXISTS patients (
    id TEXT PRIMARY KEY,

    first_name TEXT NOT NULL,
    last_name TEXT NOT NULL,
    phone_number TEXT NOT NULL,
    date_of_birth TEXT NOT NULL,
    gender TEXT NOT NULL,

    address TEXT,
    emergency_contact TEXT,
    blood_type TEXT,
    allergies TEXT,

    -- Metadata
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_patients_phone ON patients(phone_number);
CREATE INDEX IF NOT EXISTS idx_patients_name ON patients(last_name, first_name);


-- =============================================================================
-- 2. PATIENT_VISITS - One episode of care, routed between departments
-- =============================================================================
CREATE TABLE IF NOT EXISTS patient_visits (
    id TEXT PRIMARY KEY,
    patient_id TEXT NOT NULL,

    -- Vitals (taken at intake)
    weight REAL,
    blood_pressure_systolic INTEGER,
    blood_pressure_diastolic INTEGER,
    temperature REAL,
    pulse_rate INTEGER,
    respiratory_rate INTEGER,
    chief_complaint TEXT,

    created_by TEXT NOT NULL,
    assigned_doctor_id TEXT,

    -- Routing: status is informational, current_location is authoritative
    status TEXT NOT NULL DEFAULT 'in_consultation',
    current_location TEXT NOT NULL DEFAULT 'doctor',

    -- Set by the doctor
    diagnosis TEXT,
    notes TEXT,

    -- Timestamps
    visit_date TEXT NOT NULL,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP,
    completed_at TEXT,

    FOREIGN KEY (patient_id) REFERENCES patients(id)
);

CREATE INDEX IF NOT EXISTS idx_visits_patient ON patient_visits(patient_id);
CREATE INDEX IF NOT EXISTS idx_visits_queue ON patient_visits(current_location, status, visit_date);


-- =============================================================================
-- 3. DRUGS - Pharmacy catalog and stock
-- =============================================================================
-- Prices are stored as decimal strings to avoid float drift
CREATE TABLE IF NOT EXISTS drugs (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    generic_name TEXT,
    description TEXT,
    category TEXT,
    manufacturer TEXT,
    expiry_date TEXT,

    purchase_price TEXT NOT NULL DEFAULT '0.00',
    sales_price TEXT NOT NULL DEFAULT '0.00',

    stock_quantity INTEGER NOT NULL DEFAULT 0 CHECK (stock_quantity >= 0),
    reorder_level INTEGER NOT NULL DEFAULT 0,
    unit TEXT NOT NULL DEFAULT 'unit',

    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_drugs_name ON drugs(name);


-- =============================================================================
-- 4. PRESCRIPTIONS - Created by the doctor, read-only afterwards
-- =============================================================================
CREATE TABLE IF NOT EXISTS prescriptions (
    id TEXT PRIMARY KEY,
    visit_id TEXT NOT NULL,
    drug_id TEXT NOT NULL,
    dosage TEXT NOT NULL,
    frequency TEXT NOT NULL,
    duration TEXT NOT NULL,
    notes TEXT,
    created_at TEXT NOT NULL,

    FOREIGN KEY (visit_id) REFERENCES patient_visits(id),
    FOREIGN KEY (drug_id) REFERENCES drugs(id)
);

CREATE INDEX IF NOT EXISTS idx_prescriptions_visit ON prescriptions(visit_id);


-- =============================================================================
-- 5. LAB_RESULTS - Append-only test outcomes
-- =============================================================================
CREATE TABLE IF NOT EXISTS lab_results (
    id TEXT PRIMARY KEY,
    visit_id TEXT NOT NULL,
    test_name TEXT NOT NULL,
    test_result TEXT NOT NULL,
    reference_range TEXT,
    notes TEXT,
    performed_by TEXT NOT NULL,
    created_at TEXT NOT NULL,

    FOREIGN KEY (visit_id) REFERENCES patient_visits(id)
);

CREATE INDEX IF NOT EXISTS idx_lab_results_visit ON lab_results(visit_id);
"""
