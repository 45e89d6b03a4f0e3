from pathlib import Path
from typing import List
import pandas as pd
from openpyxl import Workbook
from openpyxl.styles import PatternFill, Font
from openpyxl.utils.dataframe import dataframe_to_rows
from openpyxl.utils import get_column_letter

from models.reconciliation_report import ReconciliationReport
from models.transaction import Transaction


TRANSACTION_COLUMNS = [
    "UID", "Matched", "Status", "Status (raw)", "Type", "Amount", "Currency", "Paid At",
    "Email", "Phone", "Card", "Card Holder", "Description", "Contact", "Matched By",
    "Stored Status", "Stored Amount", "Mismatches", "Sheet",
]


class ReconciliationWorkbook:
    """Creates Excel reports for a bePaid reconciliation run with category sheets and highlighting."""

    matched_fill = PatternFill(start_color="90EE90", end_color="90EE90", fill_type="solid")  # Light green
    unmatched_fill = PatternFill(start_color="FFB6C1", end_color="FFB6C1", fill_type="solid")  # Light red
    review_fill = PatternFill(start_color="FFFFE0", end_color="FFFFE0", fill_type="solid")  # Light yellow
    header_fill = PatternFill(start_color="D3D3D3", end_color="D3D3D3", fill_type="solid")  # Light gray
    header_font = Font(bold=True)

    def export_excel_report(self, report: ReconciliationReport, output_path: str) -> str:
        """
        Export reconciliation report to Excel.

        Args:
            report: Reconciliation report of the run
            output_path: Path to save Excel file

        Returns:
            Path to created Excel file
        """
        # Create output directory if it doesn't exist
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)

        wb = Workbook()
        if 'Sheet' in wb.sheetnames:
            wb.remove(wb['Sheet'])

        self._create_summary_sheet(wb, report)
        self._create_transactions_sheet(wb, "New", report.new_records)
        self._create_transactions_sheet(wb, "Updates", report.updates)
        self._create_transactions_sheet(wb, "Matches", report.matches)
        self._create_transactions_sheet(wb, "Conflicts", report.conflicts)
        self._create_suggestions_sheet(wb, report)

        wb.save(output_file)
        return str(output_file)

    def _create_summary_sheet(self, wb: Workbook, report: ReconciliationReport):
        ws = wb.create_sheet("Summary", 0)
        ws.append(["Metric", "Value"])

        rows = [
            ("Run ID", report.run_id),
            ("Source", report.source_identifier),
            ("Run Date", report.run_date.strftime('%Y-%m-%d %H:%M:%S')),
            ("Rows in file", report.total_rows),
            ("Transactions parsed", report.total_transactions),
            ("Rows skipped", report.skipped_total),
        ]
        rows += [(f"Skipped: {reason}", count) for reason, count in report.skipped.items()]
        rows += [(f"Category: {name}", count) for name, count in report.category_counts().items()]
        rows += [
            ("Matched to contact", report.matched_transactions),
            ("Unmatched", report.unmatched_transactions),
            ("Unknown status", report.unknown_status),
        ]
        rows += [(f"Status: {status}", count) for status, count in report.status_summary.items()]
        rows += [(f"Matched by: {method}", count) for method, count in report.match_method_breakdown.items()]
        rows.append(("Succeeded amount", float(report.succeeded_amount)))

        for row in rows:
            ws.append(list(row))

        self._format_headers(ws, 2)

    def _transactions_frame(self, transactions: List[Transaction]) -> pd.DataFrame:
        records = []
        for tx in transactions:
            existing = tx.existing_record or {}
            records.append({
                "UID": tx.uid,
                "Matched": "Matched" if tx.is_matched else "Unmatched",
                "Status": tx.status or "unknown",
                "Status (raw)": tx.status_raw,
                "Type": tx.transaction_type,
                "Amount": float(tx.amount),
                "Currency": tx.currency,
                "Paid At": tx.paid_at.strftime('%Y-%m-%d %H:%M:%S') if tx.paid_at else "",
                "Email": ", ".join(tx.emails),
                "Phone": ", ".join(tx.phones),
                "Card": f"*{tx.card_last4}" if tx.card_last4 else "",
                "Card Holder": tx.card_holder or "",
                "Description": tx.description or "",
                "Contact": tx.matched_contact_name or "",
                "Matched By": tx.matched_by,
                "Stored Status": existing.get("status_normalized") or existing.get("status") or "",
                "Stored Amount": existing.get("amount") or "",
                "Mismatches": ", ".join(tx.mismatches),
                "Sheet": tx.source_sheet or "",
            })
        return pd.DataFrame(records, columns=TRANSACTION_COLUMNS)

    def _create_transactions_sheet(self, wb: Workbook, title: str, transactions: List[Transaction]):
        ws = wb.create_sheet(title)
        df = self._transactions_frame(transactions)

        for r in dataframe_to_rows(df, index=False, header=True):
            ws.append(r)

        self._format_headers(ws, len(df.columns))

        # Colour Matched column (column B) and flag rows needing review
        matched_col = TRANSACTION_COLUMNS.index("Matched") + 1
        mismatch_col = TRANSACTION_COLUMNS.index("Mismatches") + 1
        status_col = TRANSACTION_COLUMNS.index("Status") + 1
        for row in range(2, len(df) + 2):
            cell = ws.cell(row=row, column=matched_col)
            cell.fill = self.matched_fill if cell.value == 'Matched' else self.unmatched_fill

            mismatch_cell = ws.cell(row=row, column=mismatch_col)
            if mismatch_cell.value:
                mismatch_cell.fill = self.unmatched_fill

            status_cell = ws.cell(row=row, column=status_col)
            if status_cell.value == "unknown":
                status_cell.fill = self.review_fill

    def _create_suggestions_sheet(self, wb: Workbook, report: ReconciliationReport):
        ws = wb.create_sheet("Suggestions")
        ws.append(["UID", "Contact ID", "Contact Name", "Score"])
        for uid, suggestions in report.suggestions.items():
            for suggestion in suggestions:
                ws.append([uid, suggestion["contact_id"], suggestion["contact_name"], suggestion["score"]])
        self._format_headers(ws, 4)

    def _format_headers(self, ws, column_count: int):
        for col in range(1, column_count + 1):
            cell = ws.cell(row=1, column=col)
            cell.fill = self.header_fill
            cell.font = self.header_font
            ws.column_dimensions[get_column_letter(col)].auto_size = True
