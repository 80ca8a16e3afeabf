"""HTTP API for the payroll suite."""
