"""
KlaroLink Test Suite.

- unit/: categorization, analytics, adapters, auth, settings and AI insights
- integration/: API flows through the FastAPI test client on the mock store
- conftest.py: Shared fixtures and test configuration

Run tests with: pytest
Run only the API flows: pytest -m integration
"""
