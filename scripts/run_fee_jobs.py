"""Run the scheduled fee jobs once, e.g. from an external cron.

Usage: python scripts/run_fee_jobs.py [late-fees|monthly|all]
"""

from __future__ import annotations

import importlib
import sys
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT / "src") not in sys.path:
    sys.path.insert(0, str(REPO_ROOT / "src"))

from school_admin.config import get_settings_module
from school_admin.container import build_container
from school_admin.core.logging_config import configure_logging


def main(argv: list[str]) -> int:
    which = argv[1] if len(argv) > 1 else "all"
    if which not in {"late-fees", "monthly", "all"}:
        print(__doc__)
        return 2

    settings = importlib.import_module(get_settings_module())
    configure_logging(getattr(settings, "LOG_LEVEL", "INFO"))
    jobs = build_container(db_config=dict(settings.DB_CONFIG)).fee_jobs

    ok = True
    if which in {"late-fees", "all"}:
        ok = jobs.apply_late_fees() is not None and ok
    if which in {"monthly", "all"}:
        ok = jobs.generate_monthly_fees() is not None and ok
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main(sys.argv))
