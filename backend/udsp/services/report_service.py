import csv
import io
import logging
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from udsp.models.lab_test import LabTest
from udsp.models.test_data import TestData
from udsp.models.user import User
from udsp.schemas.lab_test import LabTestOption
from udsp.schemas.report import (
    DateRangeOut,
    LabTestCell,
    LabTestStat,
    ReportDataResponse,
    ReportSummary,
    UserReportRow,
)
from udsp.validators import DateRange

logger = logging.getLogger(__name__)

CSV_USER_COLUMN = "User Name"


def positivity_rate(positive: int, taken: int) -> float:
    """Percentage of taken samples that were positive, 0 when nothing was taken."""
    if not taken:
        return 0.0
    return round(100 * positive / taken, 2)


def build_report_matrix(entries: list[TestData], lab_tests: list[LabTest]) -> list[UserReportRow]:
    """
    Sum taken/positive counts per (user, lab test).

    Users appear in the order of their first entry. Every row carries a cell
    for every lab test in the catalog; untouched lab tests read zero.
    """
    totals: dict[int, dict[int, list[int]]] = {}
    names: dict[int, str] = {}
    for entry in entries:
        per_user = totals.setdefault(entry.user_id, {})
        if entry.user_id not in names:
            names[entry.user_id] = entry.user.display_name
        counts = per_user.setdefault(entry.lab_test_id, [0, 0])
        counts[0] += entry.sample_taken
        counts[1] += entry.sample_positive

    rows = []
    for user_id, per_user in totals.items():
        cells = {}
        for lab_test in lab_tests:
            taken, positive = per_user.get(lab_test.id, (0, 0))
            cells[str(lab_test.id)] = LabTestCell(
                lab_test_name=lab_test.name, sample_taken=taken, sample_positive=positive
            )
        rows.append(UserReportRow(user_id=user_id, user_name=names[user_id], lab_tests=cells))
    return rows


def summarize(entries: list[TestData], date_range: DateRange) -> ReportSummary:
    total_taken = sum(e.sample_taken for e in entries)
    total_positive = sum(e.sample_positive for e in entries)

    per_lab_test: dict[int, dict] = {}
    for entry in entries:
        stat = per_lab_test.setdefault(entry.lab_test_id, {
            "name": entry.lab_test.name, "taken": 0, "positive": 0, "count": 0,
        })
        stat["taken"] += entry.sample_taken
        stat["positive"] += entry.sample_positive
        stat["count"] += 1

    lab_test_stats = [
        LabTestStat(
            lab_test_id=lab_test_id,
            lab_test_name=stat["name"],
            total_sample_taken=stat["taken"],
            total_sample_positive=stat["positive"],
            entry_count=stat["count"],
            positivity_rate=positivity_rate(stat["positive"], stat["taken"]),
        )
        for lab_test_id, stat in sorted(per_lab_test.items(), key=lambda x: (x[1]["name"], x[0]))
    ]

    return ReportSummary(
        total_entries=len(entries),
        unique_users=len({e.user_id for e in entries}),
        total_sample_taken=total_taken,
        total_sample_positive=total_positive,
        positivity_rate=positivity_rate(total_positive, total_taken),
        lab_test_stats=lab_test_stats,
        date_range=DateRangeOut(**date_range.as_dict()),
    )


def render_csv(rows: list[UserReportRow], lab_tests: list[LabTest]) -> str:
    output = io.StringIO()
    writer = csv.writer(output, lineterminator="\n")

    header = [CSV_USER_COLUMN]
    for lab_test in lab_tests:
        header.append(f"{lab_test.name} - Samples Taken")
        header.append(f"{lab_test.name} - Samples Positive")
    writer.writerow(header)

    for row in rows:
        line = [row.user_name]
        for lab_test in lab_tests:
            cell = row.lab_tests.get(str(lab_test.id))
            line.append(cell.sample_taken if cell else 0)
            line.append(cell.sample_positive if cell else 0)
        writer.writerow(line)

    return output.getvalue()


def report_filename(date_range: DateRange) -> str:
    return f"UDSP_Report_{date_range.start.isoformat()}_to_{date_range.end.isoformat()}.csv"


class ReportService:
    async def load_entries(self, date_range: DateRange, db: AsyncSession) -> list[TestData]:
        # Dates are calendar days, so the end bound already covers the whole last day
        result = await db.execute(
            select(TestData)
            .join(TestData.user)
            .options(selectinload(TestData.user), selectinload(TestData.lab_test))
            .where(TestData.date >= date_range.start, TestData.date <= date_range.end)
            .order_by(TestData.date, User.first_name, TestData.id)
        )
        return list(result.scalars().all())

    async def load_lab_tests(self, db: AsyncSession) -> list[LabTest]:
        result = await db.execute(select(LabTest).order_by(LabTest.name))
        return list(result.scalars().all())

    async def get_report_data(self, date_range: DateRange, db: AsyncSession) -> ReportDataResponse:
        entries = await self.load_entries(date_range, db)
        lab_tests = await self.load_lab_tests(db)
        rows = build_report_matrix(entries, lab_tests)
        logger.info("Report data %s..%s: %d entries, %d users",
                    date_range.start, date_range.end, len(entries), len(rows))
        return ReportDataResponse(
            report_data=rows,
            lab_tests=[LabTestOption(id=lt.id, name=lt.name) for lt in lab_tests],
            date_range=DateRangeOut(**date_range.as_dict()),
            total_users=len(rows),
            total_entries=len(entries),
        )

    async def get_summary(self, date_range: DateRange, db: AsyncSession) -> ReportSummary:
        entries = await self.load_entries(date_range, db)
        summary = summarize(entries, date_range)
        logger.info("Report summary %s..%s: %d entries, positivity %.2f%%",
                    date_range.start, date_range.end, summary.total_entries, summary.positivity_rate)
        return summary

    async def export_csv(self, date_range: DateRange, db: AsyncSession) -> str:
        entries = await self.load_entries(date_range, db)
        lab_tests = await self.load_lab_tests(db)
        rows = build_report_matrix(entries, lab_tests)
        logger.info("CSV export %s..%s: %d rows", date_range.start, date_range.end, len(rows))
        return render_csv(rows, lab_tests)


report_service = ReportService()
