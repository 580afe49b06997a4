"""Payroll period processing for a multi-tenant HR backend."""

__version__ = "0.1.0"
