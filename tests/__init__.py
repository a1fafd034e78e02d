"""
powermon Test Suite

Test Organization:
    tests/
    ├── conftest.py          # Shared fixtures
    ├── mocks/               # In-memory UPower, action runner, name claim
    ├── unit/                # Unit tests (no D-Bus needed)
    └── integration/         # Whole monitor flow against mocks

Running Tests:
    pytest tests/

Requirements:
    pip install -e ".[test]"
"""
