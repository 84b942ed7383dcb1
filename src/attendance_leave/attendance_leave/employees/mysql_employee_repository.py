from __future__ import annotations

from typing import Optional, Sequence

from ..core.enums import Role
from ..database.connection import DatabaseConnection
from ..database.mysql_base import buckets_from_row, buckets_params, db_cursor, fetchall, fetchone
from .model import BalanceChange, Company, Employee, LeaveBuckets, LeavePolicy
from .repository import CompanyRepository, EmployeeRepository

_EMPLOYEE_COLUMNS = """
    employee_id, name, company_id, primary_role, is_active, joining_date,
    total_leave_available,
    usage_paid, usage_casual, usage_sick, usage_unpaid,
    balance_paid, balance_casual, balance_sick, balance_unpaid,
    last_accrued_ym, version
"""


def _to_employee(r: dict) -> Employee:
    return Employee(
        employee_id=int(r["employee_id"]),
        name=r["name"],
        company_id=int(r["company_id"]) if r.get("company_id") is not None else None,
        role=Role(r["primary_role"]),
        is_active=bool(r["is_active"]),
        joining_date=r.get("joining_date"),
        total_leave_available=float(r.get("total_leave_available") or 0),
        leave_usage=buckets_from_row(r, "usage"),
        leave_balances=buckets_from_row(r, "balance"),
        last_accrued_ym=r.get("last_accrued_ym"),
        version=int(r.get("version") or 0),
    )


def write_balances(cur, change: BalanceChange) -> bool:
    """Versioned balance UPDATE on an open cursor; False when the version moved."""
    cur.execute(
        """
        UPDATE employees
        SET total_leave_available=%s,
            usage_paid=%s, usage_casual=%s, usage_sick=%s, usage_unpaid=%s,
            balance_paid=%s, balance_casual=%s, balance_sick=%s, balance_unpaid=%s,
            last_accrued_ym=%s,
            version=version + 1
        WHERE employee_id=%s AND version=%s
        """,
        (
            float(change.total_leave_available),
            *buckets_params(change.leave_usage),
            *buckets_params(change.leave_balances),
            change.last_accrued_ym,
            int(change.employee_id),
            int(change.expected_version),
        ),
    )
    return cur.rowcount > 0


class MySQLEmployeeRepository(EmployeeRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_EMPLOYEE_COLUMNS} FROM employees WHERE employee_id=%s", (int(employee_id),))
            r = fetchone(cur)
            return _to_employee(r) if r else None

    def list_for_auto_leave(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EMPLOYEE_COLUMNS}
                FROM employees
                WHERE company_id IS NOT NULL AND is_active=1 AND primary_role=%s
                ORDER BY employee_id
                """,
                (Role.EMPLOYEE.value,),
            )
            return [_to_employee(r) for r in fetchall(cur)]

    def list_with_joining_date(self) -> Sequence[Employee]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_EMPLOYEE_COLUMNS}
                FROM employees
                WHERE company_id IS NOT NULL AND joining_date IS NOT NULL
                ORDER BY employee_id
                """
            )
            return [_to_employee(r) for r in fetchall(cur)]

    def update_balances(self, change: BalanceChange) -> bool:
        with db_cursor(self._conn_factory) as (_, cur):
            return write_balances(cur, change)


class MySQLCompanyRepository(CompanyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_by_id(self, company_id: int) -> Optional[Company]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                """
                SELECT company_id, name, weekly_off_days,
                       total_annual, rate_per_month, cap_paid, cap_casual, cap_sick
                FROM companies
                WHERE company_id=%s
                """,
                (int(company_id),),
            )
            r = fetchone(cur)
            if not r:
                return None

            cur.execute("SELECT holiday_date FROM company_holidays WHERE company_id=%s", (int(company_id),))
            holidays = frozenset(h["holiday_date"] for h in fetchall(cur))

            off_days = tuple(int(x) for x in str(r.get("weekly_off_days") or "").split(",") if x.strip())
            return Company(
                company_id=int(r["company_id"]),
                name=r["name"],
                leave_policy=LeavePolicy(
                    total_annual=float(r.get("total_annual") or 0),
                    rate_per_month=float(r.get("rate_per_month") or 0),
                    type_caps=LeaveBuckets(
                        paid=float(r.get("cap_paid") or 0),
                        casual=float(r.get("cap_casual") or 0),
                        sick=float(r.get("cap_sick") or 0),
                    ),
                ),
                bank_holidays=holidays,
                weekly_off_days=off_days,
            )
