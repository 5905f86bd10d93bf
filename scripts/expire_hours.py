"""Nightly job: expire lapsed hour packages and make-up offers past their selection deadline."""

from __future__ import annotations

import sys
from pathlib import Path

import importlib

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from dotenv import load_dotenv

from config import get_settings_module

from src.academy_hours.academy_hours.common.logging_config import setup_logging
from src.academy_hours.academy_hours.container import build_container


def main() -> int:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), getattr(settings, "LOG_DIR", None))
    container = build_container(db_config=dict(settings.DB_CONFIG), settings=settings)

    expired = container.transaction_service.expire_purchases()
    makeups = container.postponement_service.expire_overdue_makeups()
    for name, result in (("hour packages", expired), ("make-up offers", makeups)):
        if not result.success:
            print(f"FAILED: {name}: {result.error.message}")
            return 1

    print(f"OK: expired {len(expired.data)} hour packages, {makeups.data} make-up offers")
    return 0


if __name__ == "__main__":
    sys.exit(main())
