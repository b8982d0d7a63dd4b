"""
API session harness package.

Kept importable so that:
  - test modules can use absolute imports (`apisuite.api_testing.framework`)
  - `run_tests.py` can locate suites relative to the package

Nothing here talks to the network on import.
"""
