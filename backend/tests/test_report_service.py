"""
Unit tests for report aggregation, summary statistics and CSV rendering.

Entries are plain stand-ins carrying the attributes the aggregation reads, so
these tests need no database.
"""
import csv
import io
from datetime import date
from types import SimpleNamespace
import pytest
from udsp.services.report_service import (
    build_report_matrix,
    positivity_rate,
    render_csv,
    report_filename,
    summarize,
)
from udsp.validators import DateRange

RANGE = DateRange(date(2023, 1, 1), date(2023, 1, 31))


def lab(id_, name):
    return SimpleNamespace(id=id_, name=name)


def person(id_, first, last=None):
    display = f"{first} {last or ''}".strip()
    return SimpleNamespace(id=id_, display_name=display)


def entry(user, lab_test, day, taken, positive):
    return SimpleNamespace(
        user_id=user.id, user=user,
        lab_test_id=lab_test.id, lab_test=lab_test,
        date=day, sample_taken=taken, sample_positive=positive,
    )


@pytest.fixture
def catalog():
    # Sorted by name, as the service loads it
    return [lab(2, "Blood"), lab(3, "Stool"), lab(1, "Urine")]


@pytest.fixture
def entries(catalog):
    blood, stool, urine = catalog
    ann, bob = person(10, "Ann", "Lee"), person(20, "Bob")
    return [
        entry(ann, blood, date(2023, 1, 1), 10, 2),
        entry(bob, urine, date(2023, 1, 1), 4, 1),
        entry(ann, blood, date(2023, 1, 2), 5, 5),
        entry(ann, urine, date(2023, 1, 3), 3, 0),
    ]


class TestPositivityRate:
    def test_rounded_to_two_places(self):
        assert positivity_rate(7, 15) == 46.67
        assert positivity_rate(1, 3) == 33.33

    def test_zero_taken_is_zero(self):
        assert positivity_rate(0, 0) == 0.0


class TestReportMatrix:
    def test_blood_example(self):
        blood = lab(1, "Blood")
        u1 = person(1, "U1")
        rows = build_report_matrix(
            [entry(u1, blood, date(2023, 1, 1), 10, 2), entry(u1, blood, date(2023, 1, 2), 5, 5)],
            [blood],
        )
        assert len(rows) == 1
        cell = rows[0].lab_tests["1"]
        assert (cell.sample_taken, cell.sample_positive) == (15, 7)

    def test_dense_over_catalog(self, entries, catalog):
        rows = build_report_matrix(entries, catalog)
        for row in rows:
            assert set(row.lab_tests) == {"1", "2", "3"}
        bob = next(r for r in rows if r.user_id == 20)
        assert bob.lab_tests["3"].sample_taken == 0
        assert bob.lab_tests["3"].lab_test_name == "Stool"

    def test_users_in_first_appearance_order(self, entries, catalog):
        rows = build_report_matrix(entries, catalog)
        assert [r.user_name for r in rows] == ["Ann Lee", "Bob"]

    def test_totals_match_raw_entries(self, entries, catalog):
        rows = build_report_matrix(entries, catalog)
        taken = sum(c.sample_taken for r in rows for c in r.lab_tests.values())
        positive = sum(c.sample_positive for r in rows for c in r.lab_tests.values())
        assert taken == sum(e.sample_taken for e in entries)
        assert positive == sum(e.sample_positive for e in entries)

    def test_no_entries_no_rows(self, catalog):
        assert build_report_matrix([], catalog) == []

    def test_serialises_with_camel_case_keys(self, entries, catalog):
        payload = build_report_matrix(entries, catalog)[0].model_dump(by_alias=True)
        assert payload["userName"] == "Ann Lee"
        assert payload["labTests"]["2"] == {"labTestName": "Blood", "sampleTaken": 15, "samplePositive": 7}


class TestSummary:
    def test_totals_and_rates(self, entries):
        summary = summarize(entries, RANGE)
        assert summary.total_entries == 4
        assert summary.unique_users == 2
        assert summary.total_sample_taken == 22
        assert summary.total_sample_positive == 8
        assert summary.positivity_rate == round(100 * 8 / 22, 2)
        assert summary.date_range.start_date == "2023-01-01"

    def test_lab_test_stats_only_for_used_tests(self, entries):
        stats = summarize(entries, RANGE).lab_test_stats
        assert [s.lab_test_name for s in stats] == ["Blood", "Urine"]
        blood, urine = stats
        assert (blood.entry_count, blood.total_sample_taken, blood.total_sample_positive) == (2, 15, 7)
        assert blood.positivity_rate == 46.67
        assert (urine.entry_count, urine.total_sample_taken) == (2, 7)

    def test_empty_range(self):
        summary = summarize([], RANGE)
        assert summary.total_entries == 0
        assert summary.unique_users == 0
        assert summary.positivity_rate == 0.0
        assert summary.lab_test_stats == []

    def test_zero_taken_lab_test_has_zero_rate(self):
        blood = lab(1, "Blood")
        summary = summarize([entry(person(1, "A"), blood, date(2023, 1, 1), 0, 0)], RANGE)
        assert summary.positivity_rate == 0.0
        assert summary.lab_test_stats[0].positivity_rate == 0.0


class TestCsv:
    def test_header_and_rows(self, entries, catalog):
        text = render_csv(build_report_matrix(entries, catalog), catalog)
        lines = text.splitlines()
        assert lines[0] == (
            "User Name,Blood - Samples Taken,Blood - Samples Positive,"
            "Stool - Samples Taken,Stool - Samples Positive,"
            "Urine - Samples Taken,Urine - Samples Positive"
        )
        assert lines[1] == "Ann Lee,15,7,0,0,3,0"
        assert lines[2] == "Bob,0,0,0,0,4,1"

    def test_shape(self, entries, catalog):
        rows = list(csv.reader(io.StringIO(render_csv(build_report_matrix(entries, catalog), catalog))))
        assert len(rows) - 1 == 2
        assert all(len(r) == 1 + 2 * len(catalog) for r in rows)

    def test_names_with_commas_are_quoted(self):
        odd = lab(1, 'PCR, "rapid"')
        user = person(1, "Smith,", "Jo")
        text = render_csv(build_report_matrix([entry(user, odd, date(2023, 1, 1), 2, 1)], [odd]), [odd])
        rows = list(csv.reader(io.StringIO(text)))
        assert rows[0] == ["User Name", 'PCR, "rapid" - Samples Taken', 'PCR, "rapid" - Samples Positive']
        assert rows[1] == ["Smith, Jo", "2", "1"]

    def test_filename(self):
        assert report_filename(RANGE) == "UDSP_Report_2023-01-01_to_2023-01-31.csv"
