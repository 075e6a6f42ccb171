"""HTTP API for the payroll review engine."""
