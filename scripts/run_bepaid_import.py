#!/usr/bin/env python3
"""
bePaid Statement Import Runner

Reconciles the configured statement, then imports the categories listed in
import.categories into the staging queue. With import.apply_overrides, ledger
conflicts are recorded as status overrides.
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

from core.batch_importer import BatchImporter
from core.config import load_config
from core.errors import SmartImportError
from core.notifications import LoggingNotifier
from core.orders import OrderLinker, StoreOrderService
from core.override_applier import apply_overrides
from core.session import ImportSession
from importers.bepaid_importer import BepaidImporter
from stores.json_store import JsonFileStore


def export_import_result(run_id: str, result, output_config: dict):
    """Export per-transaction import outcomes to JSON."""
    output_base = Path(output_config.get('output_base', 'output'))
    reports_dir = output_base / output_config.get('reports_subdir', 'reconciliation_reports')
    reports_dir.mkdir(parents=True, exist_ok=True)

    result_file = reports_dir / f"{run_id}_import.json"
    with open(result_file, 'w', encoding='utf-8') as f:
        json.dump(result.model_dump(mode='json'), f, indent=2, default=str, ensure_ascii=False)
    print(f"Import result saved to: {result_file}")


def main():
    config = load_config(project_root / 'config' / 'import_config.yaml')
    import_config = config['import']

    statement = sys.argv[1] if len(sys.argv) > 1 else config['data'].get('statement_path')
    if not statement:
        print("Error: data.statement_path not found in config")
        sys.exit(1)

    if not Path(statement).exists():
        print(f"Error: statement file not found: {statement}")
        sys.exit(1)

    print(f"Importing bePaid statement: {statement}")
    print(f"   Categories: {', '.join(import_config['categories'])}")

    try:
        store = JsonFileStore(config['paths']['store'])
        session = ImportSession(store, config)

        report = BepaidImporter(session).reconcile_transactions(statement)
        print(f"\n📊 Categories: {report.category_counts()}")

        linker = OrderLinker(store, StoreOrderService(store), session.product_mappings, LoggingNotifier())
        importer = BatchImporter(session, order_linker=linker)
        result = importer.import_selected(
            {
                "new": report.new_records,
                "updates": report.updates,
                "matches": report.matches,
                "conflicts": report.conflicts,
            },
            categories=import_config['categories'],
            auto_create_orders=import_config['auto_create_orders'],
            source_identifier=statement,
        )

        export_import_result(report.run_id, result, config['paths'])

        print(f"\n🎯 bePaid Import Complete (job {result.job.id})")
        for status, count in result.counts().items():
            print(f"   {status.replace('_', ' ').title()}: {count}")
        for outcome in result.errors[:10]:
            print(f"   ⚠️  {outcome.uid}: {outcome.error}")

        if import_config['apply_overrides'] and report.conflicts:
            overrides = apply_overrides(store, report.conflicts, provider=session.provider)
            print(f"\n🔁 Status overrides: {len(overrides.applied)} applied, {len(overrides.skipped)} skipped, "
                  f"{len(overrides.errors)} errors")

        print(f"\nTo undo this import: python scripts/rollback_import_batch.py {result.job.id}")

    except SmartImportError as e:
        print(f"❌ Import failed: {e}")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Import failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
