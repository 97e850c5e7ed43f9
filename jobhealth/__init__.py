"""
Job Financial Health Backend Package.

FastAPI service layer that turns construction job ledgers (earned value totals,
AP register, timelog register, schedule of values, progress reports and
cost-to-complete forecasts) into cost performance metrics, spending trends and
a job-health classification.

Subpackages:
    - api: FastAPI route handlers
    - core: Configuration, HTTP client lifecycle and dependencies
    - models: Pydantic schemas and enums
    - services: Ingestion, derivation, trend, classification and feed fan-out
"""

__version__ = "1.0.0"
