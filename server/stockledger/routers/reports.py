from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from stockledger.db import get_db
from stockledger.errors import StockLedgerError, to_http_exception
from stockledger.monthly.service import list_snapshots
from stockledger.reports import schemas
from stockledger.reports.service import build_inventory_report, inventory_report_csv, monthly_report_csv
from stockledger.routers.monthly_inventory import to_snapshot_response


router = APIRouter(prefix="/api/reports", tags=["reports"])

ReportFormat = Literal["json", "csv"]


def _csv_response(body: str, filename: str) -> Response:
    return Response(
        content=body,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/inventory", response_model=List[schemas.InventoryReportItem])
def inventory_report(
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    format: ReportFormat = "json",
    db: Session = Depends(get_db),
):
    report = build_inventory_report(db, item_id=item_id, warehouse_id=warehouse_id)
    if format == "csv":
        return _csv_response(inventory_report_csv(report), "inventory-report.csv")
    return report


@router.get("/monthly/{year}/{month}", response_model=schemas.MonthlyReportResponse)
def monthly_report(
    year: int,
    month: int,
    item_id: Optional[int] = None,
    warehouse_id: Optional[int] = None,
    format: ReportFormat = "json",
    db: Session = Depends(get_db),
):
    try:
        rows = list_snapshots(db, year=year, month=month, item_id=item_id, warehouse_id=warehouse_id)
    except StockLedgerError as exc:
        raise to_http_exception(exc)
    if format == "csv":
        return _csv_response(monthly_report_csv(rows), f"monthly-inventory-{year:04d}-{month:02d}.csv")
    return schemas.MonthlyReportResponse(
        year=year,
        month=month,
        count=len(rows),
        data=[to_snapshot_response(row) for row in rows],
    )
