from openpyxl import load_workbook

from exporters.reconciliation_workbook import TRANSACTION_COLUMNS, ReconciliationWorkbook
from models.reconciliation_report import ReconciliationReport


def build_report(make_tx):
    new = make_tx("N1", reconcile_status="new", status=None, status_raw="Mystery")
    conflict = make_tx("U1", reconcile_status="conflict", status="failed", mismatches=["status"],
                       existing_record={"status": "succeeded", "amount": "100.00"},
                       matched_contact_id="c1", matched_contact_name="Анна Иванова", matched_by="email")
    return ReconciliationReport.from_results(
        run_id="bepaid_test",
        platform="bepaid",
        source_identifier="statement.csv",
        total_rows=3,
        skipped={"no_contact": 1},
        transactions=[new, conflict],
        match_results=[],
        processing_time=0.1,
        suggestions={"N1": [{"contact_id": "c3", "contact_name": "Иван Иванов", "score": 91}]},
    )


def test_workbook_has_a_sheet_per_category(tmp_path, make_tx):
    output = ReconciliationWorkbook().export_excel_report(build_report(make_tx), str(tmp_path / "out" / "r.xlsx"))

    wb = load_workbook(output)
    assert wb.sheetnames == ["Summary", "New", "Updates", "Matches", "Conflicts", "Suggestions"]

    conflicts = wb["Conflicts"]
    assert [c.value for c in conflicts[1]] == TRANSACTION_COLUMNS
    assert conflicts.cell(row=2, column=1).value == "U1"
    assert conflicts.cell(row=2, column=TRANSACTION_COLUMNS.index("Stored Status") + 1).value == "succeeded"
    assert conflicts.cell(row=2, column=TRANSACTION_COLUMNS.index("Mismatches") + 1).value == "status"

    new = wb["New"]
    assert new.cell(row=2, column=TRANSACTION_COLUMNS.index("Status") + 1).value == "unknown"
    assert wb["Updates"].max_row == 1

    suggestions = wb["Suggestions"]
    assert [c.value for c in suggestions[2]] == ["N1", "c3", "Иван Иванов", 91]


def test_summary_lists_skipped_rows(tmp_path, make_tx):
    output = ReconciliationWorkbook().export_excel_report(build_report(make_tx), str(tmp_path / "r.xlsx"))

    summary = {row[0]: row[1] for row in load_workbook(output)["Summary"].iter_rows(min_row=2, values_only=True)}
    assert summary["Rows skipped"] == 1
    assert summary["Skipped: no_contact"] == 1
    assert summary["Category: conflicts"] == 1
    assert summary["Unknown status"] == 1
