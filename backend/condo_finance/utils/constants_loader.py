import os
from pathlib import Path

import yaml

_BUNDLED = Path(__file__).resolve().parent.parent / "constants"


def _constants_path() -> Path:
    """Read CONDO_CONSTANTS_PATH at call time (supports env var changes in tests)."""
    return Path(os.getenv("CONDO_CONSTANTS_PATH", str(_BUNDLED)))


# Simple dict cache keyed by path to support test env var overrides
_cache: dict[str, dict] = {}


def load_constants() -> dict:
    """Load reference constants, falling back to the bundled copy."""
    path = _constants_path()
    cache_key = str(path)
    if cache_key in _cache:
        return _cache[cache_key]

    target = path / "reference.yaml"
    if not target.exists():
        target = _BUNDLED / "reference.yaml"
    if not target.exists():
        raise FileNotFoundError(f"No reference constants found in {path}")

    with open(target, encoding="utf-8") as f:
        result = yaml.safe_load(f)
    _cache[cache_key] = result
    return result


def get_income_expense_types() -> dict:
    return load_constants()["income_expense_types"]


def get_record_types() -> dict:
    return load_constants()["record_types"]


def get_payment_status() -> dict:
    return load_constants()["payment_status"]


def get_delinquency_payment_method_id() -> int:
    constants = load_constants()
    return constants["payment_methods"][constants["delinquency_payment_method"]]


def get_maintenance_constants() -> dict:
    constants = load_constants()
    return {
        "types": constants["maintenance_types"],
        "kinds": constants["maintenance_kinds"],
        "statuses": constants["maintenance_statuses"],
    }


def get_labels() -> dict:
    return load_constants()["labels"]


def get_short_months() -> list[str]:
    return load_constants()["short_months"]


def get_seed_categories() -> list[dict]:
    return load_constants().get("categories", [])
