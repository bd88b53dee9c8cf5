"""WorkPulse package.

Feature modules (users, attendance, payroll, prana, ...) share one layout:
frozen dataclass models, Protocol repositories with MySQL implementations,
service classes holding the business rules and a thin Flask controller layer.
"""
