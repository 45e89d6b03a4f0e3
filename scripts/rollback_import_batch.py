#!/usr/bin/env python3
"""
Import Batch Rollback

Deletes the staging records created by one import job:

    python scripts/rollback_import_batch.py <import_job_id>
"""

import sys
from pathlib import Path
from dotenv import load_dotenv

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

# Load environment variables
load_dotenv(project_root / "config" / ".env")

from core.batch_importer import rollback_batch
from core.config import load_config
from stores.base import IMPORT_JOBS
from stores.json_store import JsonFileStore


def main():
    if len(sys.argv) < 2:
        print("Usage: rollback_import_batch.py <import_job_id>")
        sys.exit(1)
    batch_id = sys.argv[1]

    config = load_config(project_root / 'config' / 'import_config.yaml')

    try:
        store = JsonFileStore(config['paths']['store'])
        if not store.select(IMPORT_JOBS, {"id": batch_id}):
            print(f"Error: import job not found: {batch_id}")
            sys.exit(1)

        deleted = rollback_batch(store, batch_id)
        print(f"🗑️  Rolled back import job {batch_id}: {deleted} staging records deleted")

    except Exception as e:
        print(f"❌ Rollback failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
