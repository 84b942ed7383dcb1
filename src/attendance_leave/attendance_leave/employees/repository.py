from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import BalanceChange, Company, Employee


class EmployeeRepository(Protocol):
    """Repository interface for employees.

    Services depend on this protocol, never on a concrete database.
    """

    def get_by_id(self, employee_id: int) -> Optional[Employee]:
        raise NotImplementedError

    def list_for_auto_leave(self) -> Sequence[Employee]:
        """Active EMPLOYEE-role records that belong to a company."""

        raise NotImplementedError

    def list_with_joining_date(self) -> Sequence[Employee]:
        """Records with both a company and a joining date."""

        raise NotImplementedError

    def update_balances(self, change: BalanceChange) -> bool:
        """Compare-and-swap write of the balance fields.

        Returns False (and writes nothing) when the stored version no longer
        equals ``change.expected_version``; on success the version is incremented.
        """

        raise NotImplementedError


class CompanyRepository(Protocol):
    def get_by_id(self, company_id: int) -> Optional[Company]:
        raise NotImplementedError
