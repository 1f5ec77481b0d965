from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession
from udsp.auth import require_admin
from udsp.database import get_db
from udsp.models.user import User
from udsp.schemas.report import ReportDataResponse, ReportSummary
from udsp.services.report_service import report_filename, report_service
from udsp.validators import DateRange, parse_date_range

router = APIRouter()


def get_date_range(
    start_date: Optional[str] = Query(None, alias="startDate"),
    end_date: Optional[str] = Query(None, alias="endDate"),
) -> DateRange:
    return parse_date_range(start_date, end_date)


# require_admin is declared before the range so callers without access never see validation detail
@router.get("/data", response_model=ReportDataResponse)
async def report_data(
    current_user: User = Depends(require_admin),
    date_range: DateRange = Depends(get_date_range),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.get_report_data(date_range, db)


@router.get("/summary", response_model=ReportSummary)
async def report_summary(
    current_user: User = Depends(require_admin),
    date_range: DateRange = Depends(get_date_range),
    db: AsyncSession = Depends(get_db),
):
    return await report_service.get_summary(date_range, db)


@router.get("/export-csv")
async def export_csv(
    current_user: User = Depends(require_admin),
    date_range: DateRange = Depends(get_date_range),
    db: AsyncSession = Depends(get_db),
):
    content = await report_service.export_csv(date_range, db)
    return StreamingResponse(
        iter([content]),
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="{report_filename(date_range)}"',
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        },
    )
