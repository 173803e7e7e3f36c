"""NusaPay payroll history service."""
