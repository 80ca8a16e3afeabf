"""Multi-tenant payroll administration with tiered payroll visibility."""

__version__ = "0.1.0"
