"""Drug catalog repository with the atomic stock decrement."""

import uuid
from datetime import datetime
from decimal import Decimal

from .connection import transaction
from .models import Drug


class DrugRepository:
    """Repository for the pharmacy drug catalog."""

    # Fields that can be updated through inventory management
    DRUG_FIELDS = [
        "name", "generic_name", "description", "category", "manufacturer",
        "expiry_date", "purchase_price", "sales_price", "stock_quantity",
        "reorder_level", "unit",
    ]

    def list_drugs(self) -> list[Drug]:
        """All drugs, alphabetically."""
        with transaction("list_drugs") as conn:
            rows = conn.execute("SELECT * FROM drugs ORDER BY name").fetchall()
        return [self._row_to_drug(row) for row in rows]

    def get_inventory(self) -> list[Drug]:
        """All drugs, lowest stock first."""
        with transaction("get_inventory") as conn:
            rows = conn.execute(
                "SELECT * FROM drugs ORDER BY stock_quantity ASC, name"
            ).fetchall()
        return [self._row_to_drug(row) for row in rows]

    def get_by_id(self, drug_id: str) -> Drug | None:
        """Get a drug by ID."""
        with transaction("get_drug") as conn:
            row = conn.execute("SELECT * FROM drugs WHERE id = ?", (drug_id,)).fetchone()
        return self._row_to_drug(row) if row else None

    def create(self, drug: Drug) -> Drug:
        """Add a drug to the catalog."""
        drug.id = drug.id or str(uuid.uuid4())
        now = datetime.now().isoformat()

        with transaction("create_drug") as conn:
            conn.execute("""
                INSERT INTO drugs (
                    id, name, generic_name, description, category, manufacturer,
                    expiry_date, purchase_price, sales_price, stock_quantity,
                    reorder_level, unit, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """, (
                drug.id, drug.name, drug.generic_name, drug.description,
                drug.category, drug.manufacturer, drug.expiry_date,
                str(drug.purchase_price), str(drug.sales_price),
                drug.stock_quantity, drug.reorder_level, drug.unit, now, now,
            ))

        drug.created_at = now
        drug.updated_at = now
        return drug

    def update(self, drug_id: str, updates: dict) -> Drug | None:
        """Update catalog fields; unknown fields are ignored."""
        valid_updates = {}
        for field, value in updates.items():
            if field not in self.DRUG_FIELDS:
                continue
            if field in ("purchase_price", "sales_price"):
                value = str(value)
            valid_updates[field] = value

        if valid_updates:
            set_clause = ", ".join(f"{field} = ?" for field in valid_updates)
            set_clause += ", updated_at = ?"
            values = list(valid_updates.values()) + [datetime.now().isoformat(), drug_id]
            with transaction("update_drug") as conn:
                conn.execute(f"UPDATE drugs SET {set_clause} WHERE id = ?", values)
        return self.get_by_id(drug_id)

    def delete(self, drug_id: str) -> bool:
        """Remove a drug from the catalog. Returns False if it did not exist."""
        with transaction("delete_drug") as conn:
            cursor = conn.execute("DELETE FROM drugs WHERE id = ?", (drug_id,))
            return cursor.rowcount > 0

    def decrement_stock(self, drug_id: str, quantity: int) -> Drug | None:
        """
        Atomically take `quantity` units out of stock.

        The decrement only applies when enough stock is left, in a single
        statement, so concurrent dispensers can never drive stock negative.
        Returns the updated drug, or None when nothing was decremented.
        """
        with transaction("decrement_stock") as conn:
            cursor = conn.execute(
                """UPDATE drugs
                   SET stock_quantity = stock_quantity - ?, updated_at = ?
                   WHERE id = ? AND stock_quantity >= ?""",
                (quantity, datetime.now().isoformat(), drug_id, quantity),
            )
            if cursor.rowcount == 0:
                return None
            row = conn.execute("SELECT * FROM drugs WHERE id = ?", (drug_id,)).fetchone()
        return self._row_to_drug(row)

    def _row_to_drug(self, row) -> Drug:
        """Convert a database row to a Drug object."""
        return Drug(
            id=row["id"],
            name=row["name"],
            generic_name=row["generic_name"],
            description=row["description"],
            category=row["category"],
            manufacturer=row["manufacturer"],
            expiry_date=row["expiry_date"],
            purchase_price=Decimal(row["purchase_price"]),
            sales_price=Decimal(row["sales_price"]),
            stock_quantity=row["stock_quantity"],
            reorder_level=row["reorder_level"],
            unit=row["unit"],
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )
