#!/usr/bin/env python
from __future__ import annotations

import json
import os
import sys
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy import create_engine, text

ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from app.services.schema_guard import EXPECTED_ALEMBIC_HEAD
from app.services.work_log import WorkLogParseError, parse_work_log


def load_env_if_exists() -> None:
    env_file = Path(".env")
    if not env_file.exists():
        return
    for raw_line in env_file.read_text(encoding="utf-8").splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        os.environ.setdefault(key.strip(), value.strip())


def run() -> dict:
    load_env_if_exists()
    database_url = os.environ.get("DATABASE_URL")
    if not database_url:
        raise RuntimeError("DATABASE_URL not found (.env or env vars).")

    engine = create_engine(database_url)
    report: dict = {
        "generated_at_utc": datetime.now(timezone.utc).isoformat(),
        "database_url": engine.url.render_as_string(hide_password=True),
        "checks": [],
    }

    def add(name: str, status: str, details: dict) -> None:
        report["checks"].append(
            {
                "name": name,
                "status": status,
                "details": details,
            }
        )

    with engine.connect() as conn:
        current_versions = [
            row[0] for row in conn.execute(text("select version_num from alembic_version")).fetchall()
        ]
        add("alembic_version", "ok" if current_versions else "fail", {"current": current_versions})
        add(
            "migration_up_to_date",
            "ok" if EXPECTED_ALEMBIC_HEAD in current_versions else "warn",
            {"expected_head": EXPECTED_ALEMBIC_HEAD, "current": current_versions},
        )

        # Name-based references are not enforced by the schema; report the orphans.
        orphan_payments = conn.execute(
            text(
                """
                select s.payment_id, s.staff_name
                from salary_logs s
                left join cleaners c on c.name = s.staff_name
                where c.id is null
                limit 20
                """
            )
        ).fetchall()
        add(
            "salary_log_unknown_staff",
            "warn" if orphan_payments else "ok",
            {"rows": [list(row) for row in orphan_payments]},
        )

        orphan_complaints = conn.execute(
            text(
                """
                select c.id, c.branch
                from complaints c
                left join branches b on b.branch_name = c.branch
                where b.id is null
                limit 20
                """
            )
        ).fetchall()
        add(
            "complaint_unknown_branch",
            "warn" if orphan_complaints else "ok",
            {"rows": [list(row) for row in orphan_complaints]},
        )

        unreadable_work_logs: list[str] = []
        for payment_id, work_log in conn.execute(text("select payment_id, work_log from salary_logs")):
            try:
                parse_work_log(work_log)
            except WorkLogParseError:
                unreadable_work_logs.append(payment_id)
        add(
            "salary_log_unreadable_work_log",
            "warn" if unreadable_work_logs else "ok",
            {"sample_payment_ids": unreadable_work_logs[:20], "count": len(unreadable_work_logs)},
        )

        inconsistent_net_pay = conn.execute(
            text(
                """
                select payment_id, gross_total, deductions, net_pay
                from salary_logs
                where abs((gross_total - deductions) - net_pay) > 0.005
                limit 20
                """
            )
        ).fetchall()
        add(
            "salary_log_net_pay_mismatch",
            "fail" if inconsistent_net_pay else "ok",
            {"rows": [list(row) for row in inconsistent_net_pay]},
        )

    return report


if __name__ == "__main__":
    print(json.dumps(run(), ensure_ascii=False, indent=2, default=str))
