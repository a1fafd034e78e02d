"""
powermon Integration Tests

Drive the complete startup, dispatch and shutdown path with mock D-Bus
collaborators and real action scripts. No bus connection is needed.

Running:
    pytest tests/integration/ -v
"""
