"""
Reminder Kernel - shared infrastructure for the repayment reminder engine.

- Typed exceptions with machine-readable codes
- Structured JSON logging with run-scoped context
- Environment / YAML configuration
- Injectable clock
- SQLAlchemy engine, declarative base and system-of-record models
- Read-only eligibility selector
"""

__version__ = "0.1.0"
