"""Attendance & leave engine package.

Feature modules (attendance, leaves, balances, employees) each carry a
domain model, a repository protocol with a MySQL implementation and the
services/jobs holding the business rules. Flask controllers stay thin.
"""
