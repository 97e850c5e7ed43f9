'''
Job Financial Health Test Suite

Test Modules:
-------------
- test_ingestion.py: Feed parsing and FinancialInputs construction
  - Lenient coercion of malformed payloads
  - Latest approved progress report / latest forecast selection
  - Contract value and progress precedence

- test_metrics.py: Derived metric formulas
  - Zero-denominator guards
  - Negative outstanding AP warning

- test_trend.py: Monthly and weekly time buckets
  - Window ending at min(job end, as-of), clamped to the job start
  - Labor and cost trend classification

- test_classification.py: Health and priority classification
  - Each rule in isolation, upward-only escalation
  - Issue ordering, CPI / SPI / budget display labels
  - End-to-end over-budget scenario

- test_engine.py: Report assembly, totality over failed feeds,
  async per-job and portfolio evaluation

- test_feeds.py: Concurrent feed fan-out against httpx.MockTransport

- test_earned_value.py: Earned-vs-burned analysis per SOV line

- test_portfolio.py: Filtering, sorting, at-risk ranking, summary

- test_api.py: FastAPI endpoint contract tests

Running Tests:
--------------
    pip install -e ".[test]"
    pytest -v

Configuration:
--------------
See conftest.py for shared fixtures and test configuration.
'''

# All tests live in the individual test_*.py modules
# This file enables pytest discovery of the tests directory

__all__ = []
