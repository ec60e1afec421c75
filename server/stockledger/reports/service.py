import csv
from decimal import Decimal
from io import StringIO
import logging
from typing import Optional

from sqlalchemy.orm import Session

from stockledger.inventory.queries import list_inventory
from stockledger.models import MonthlyInventory


logger = logging.getLogger(__name__)

INVENTORY_CSV_HEADER = [
    "Item Code",
    "Item Name",
    "Item Type",
    "Warehouse",
    "Lot Number",
    "Production Date",
    "Quantity",
    "Unit",
    "Allocated Quantity",
    "Available Quantity",
]

MONTHLY_CSV_HEADER = [
    "Month",
    "Item Code",
    "Item Name",
    "Warehouse",
    "Lot Number",
    "Unit",
    "Opening Quantity",
    "Incoming Quantity",
    "Outgoing Quantity",
    "Closing Quantity",
]

_FORMULA_PREFIXES = {"=", "+", "-", "@", "\t", "\r"}


def sanitize_csv_field(value: Optional[str], field_name: str = "unknown") -> str:
    """Strip leading characters that spreadsheets would evaluate as a formula."""
    if value is None:
        return ""
    text = str(value).strip()
    stripped = []
    while text and text[0] in _FORMULA_PREFIXES:
        stripped.append(text[0])
        text = text[1:]
    if stripped:
        logger.warning("CSV formula characters stripped from field %s: %r", field_name, "".join(stripped))
    return text


def build_inventory_report(db: Session, *, item_id: Optional[int] = None, warehouse_id: Optional[int] = None) -> list[dict]:
    """Group on-hand stock as item -> warehouse -> lot with running totals."""
    grouped: dict[int, dict] = {}
    for row in list_inventory(db, item_id=item_id, warehouse_id=warehouse_id):
        record = row["record"]
        item = record.lot.item
        item_entry = grouped.setdefault(
            item.id,
            {
                "item_id": item.id,
                "item_code": item.code,
                "item_name": item.name,
                "item_type": item.item_type,
                "total_qty": Decimal("0"),
                "total_allocated_qty": Decimal("0"),
                "total_available_qty": Decimal("0"),
                "warehouses": {},
            },
        )
        warehouse_entry = item_entry["warehouses"].setdefault(
            record.warehouse_id,
            {
                "warehouse_id": record.warehouse_id,
                "warehouse_name": record.warehouse.name,
                "total_qty": Decimal("0"),
                "total_allocated_qty": Decimal("0"),
                "total_available_qty": Decimal("0"),
                "lots": [],
            },
        )
        warehouse_entry["lots"].append(
            {
                "lot_id": record.lot_id,
                "lot_number": record.lot.lot_number,
                "production_date": record.lot.production_date,
                "unit_id": record.unit_id,
                "unit_name": record.unit.name,
                "quantity": row["quantity"],
                "allocated_qty": row["allocated_qty"],
                "available_qty": row["available_qty"],
            }
        )
        for entry in (warehouse_entry, item_entry):
            entry["total_qty"] += row["quantity"]
            entry["total_allocated_qty"] += row["allocated_qty"]
            entry["total_available_qty"] += row["available_qty"]

    return [
        {**item_entry, "warehouses": list(item_entry["warehouses"].values())}
        for item_entry in grouped.values()
    ]


def inventory_report_csv(report: list[dict]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(INVENTORY_CSV_HEADER)
    for item in report:
        for warehouse in item["warehouses"]:
            for lot in warehouse["lots"]:
                writer.writerow(
                    [
                        sanitize_csv_field(item["item_code"], "item_code"),
                        sanitize_csv_field(item["item_name"], "item_name"),
                        item["item_type"],
                        sanitize_csv_field(warehouse["warehouse_name"], "warehouse_name"),
                        sanitize_csv_field(lot["lot_number"], "lot_number"),
                        lot["production_date"].isoformat(),
                        lot["quantity"],
                        sanitize_csv_field(lot["unit_name"], "unit_name"),
                        lot["allocated_qty"],
                        lot["available_qty"],
                    ]
                )
    return buffer.getvalue()


def monthly_report_csv(rows: list[MonthlyInventory]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(MONTHLY_CSV_HEADER)
    for row in rows:
        writer.writerow(
            [
                row.month.strftime("%Y-%m"),
                sanitize_csv_field(row.item.code, "item_code"),
                sanitize_csv_field(row.item.name, "item_name"),
                sanitize_csv_field(row.warehouse.name, "warehouse_name"),
                sanitize_csv_field(row.lot.lot_number, "lot_number"),
                sanitize_csv_field(row.unit.name, "unit_name"),
                row.opening_quantity,
                row.incoming_quantity,
                row.outgoing_quantity,
                row.closing_quantity,
            ]
        )
    return buffer.getvalue()
