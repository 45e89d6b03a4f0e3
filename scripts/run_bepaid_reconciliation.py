#!/usr/bin/env python3
"""
bePaid Statement Reconciliation Runner (dry run)

Parses the statement configured in import_config.yaml under
data.statement_path (or given as the first argument), matches contacts and
classifies every transaction as new / update / match / conflict. Nothing is
written to the store; the report is saved as JSON and Excel.
"""

import sys
import json
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
load_dotenv(project_root / "config" / ".env")

from core.config import load_config
from core.errors import SmartImportError
from core.session import ImportSession
from exporters.reconciliation_workbook import ReconciliationWorkbook
from importers.bepaid_importer import BepaidImporter
from stores.json_store import JsonFileStore


def export_reconciliation_report(report, output_config: dict):
    """Export reconciliation report to JSON and Excel."""
    output_base = Path(output_config.get('output_base', 'output'))
    reports_dir = output_base / output_config.get('reports_subdir', 'reconciliation_reports')
    reports_dir.mkdir(parents=True, exist_ok=True)

    # Save report
    report_file = reports_dir / f"{report.run_id}.json"
    with open(report_file, 'w', encoding='utf-8') as f:
        json.dump(report.model_dump(mode='json'), f, indent=2, default=str, ensure_ascii=False)
    print(f"Report saved to: {report_file}")

    excel_file = ReconciliationWorkbook().export_excel_report(report, str(reports_dir / f"{report.run_id}.xlsx"))
    print(f"Excel report saved to: {excel_file}")


def main():
    config = load_config(project_root / 'config' / 'import_config.yaml')

    statement = sys.argv[1] if len(sys.argv) > 1 else config['data'].get('statement_path')
    if not statement:
        print("Error: data.statement_path not found in config")
        sys.exit(1)

    if not Path(statement).exists():
        print(f"Error: statement file not found: {statement}")
        sys.exit(1)

    print(f"Reconciling bePaid statement: {statement}")

    try:
        store = JsonFileStore(config['paths']['store'])
        session = ImportSession(store, config)

        importer = BepaidImporter(session)
        report = importer.reconcile_transactions(statement)

        export_reconciliation_report(report, config['paths'])

        # Print summary
        print(f"\n🎯 bePaid Reconciliation Complete")
        print(f"   Rows in file: {report.total_rows}")
        print(f"   Transactions: {report.total_transactions}")
        print(f"   Skipped rows: {report.skipped_total} {report.skipped}")
        print(f"   Matched: {report.matched_transactions}")
        print(f"   Unmatched: {report.unmatched_transactions}")
        print(f"   Unknown status: {report.unknown_status}")
        print(f"   Processing time: {report.processing_time:.2f}s")

        print(f"\n📊 Categories:")
        for category, count in report.category_counts().items():
            print(f"   {category.capitalize()}: {count}")

        print(f"\n🔍 Match Methods:")
        for method, count in report.match_method_breakdown.items():
            print(f"   {method.replace('_', ' ').title()}: {count}")

        print(f"\n💰 Succeeded amount in file: {report.succeeded_amount}")

    except SmartImportError as e:
        print(f"❌ Reconciliation failed: {e}")
        print("   Check the file format (bePaid CSV or XLSX export).")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Reconciliation failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
