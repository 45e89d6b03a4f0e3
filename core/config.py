import copy
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


DEFAULT_CONFIG: Dict[str, Any] = {
    "data": {
        "statement_path": None,
    },
    "paths": {
        "store": "data/store.json",
        "output_base": "output",
        "reports_subdir": "reconciliation_reports",
        "logs_dir": "logs",
    },
    "import": {
        "provider": "bepaid",
        "batch_size": 50,
        "categories": ["new", "updates"],
        "auto_create_orders": True,
        "apply_overrides": False,
    },
    "reconcile": {
        "amount_epsilon": "0.01",
        "page_size": 500,
    },
    "matching": {
        "suggestion_threshold": 80,
        "suggestion_limit": 3,
    },
    "parsing": {
        "fee_amount_threshold": "1.00",
    },
    "progress": {
        "enabled": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def build_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Defaults merged with the given overrides."""
    config = _merge(DEFAULT_CONFIG, overrides or {})
    store_env = os.getenv("SMART_IMPORT_STORE_PATH")
    if store_env:
        config["paths"]["store"] = store_env
    return config


def load_config(config_path: str) -> Dict[str, Any]:
    """Load configuration from YAML file."""
    path = Path(config_path)
    if not path.exists():
        return build_config()
    with open(path, 'r', encoding='utf-8') as f:
        return build_config(yaml.safe_load(f) or {})
