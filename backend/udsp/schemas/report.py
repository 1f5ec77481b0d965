from pydantic import Field
from udsp.schemas.base import CamelModel
from udsp.schemas.lab_test import LabTestOption


class LabTestCell(CamelModel):
    lab_test_name: str
    sample_taken: int = 0
    sample_positive: int = 0


class UserReportRow(CamelModel):
    user_id: int
    user_name: str
    lab_tests: dict[str, LabTestCell] = Field(default_factory=dict)


class DateRangeOut(CamelModel):
    start_date: str
    end_date: str


class ReportDataResponse(CamelModel):
    report_data: list[UserReportRow]
    lab_tests: list[LabTestOption]
    date_range: DateRangeOut
    total_users: int
    total_entries: int


class LabTestStat(CamelModel):
    lab_test_id: int
    lab_test_name: str
    total_sample_taken: int
    total_sample_positive: int
    entry_count: int
    positivity_rate: float


class ReportSummary(CamelModel):
    total_entries: int
    unique_users: int
    total_sample_taken: int
    total_sample_positive: int
    positivity_rate: float
    lab_test_stats: list[LabTestStat]
    date_range: DateRangeOut
