"""Node Resource Collector Test Suite.

Test Organization:
    tests/
        unit/               - Unit tests for individual modules
            collector/
                providers/  - Metric provider and factory tests
                core/       - Config, snapshot, transport and dispatch tests
                collectors/ - Hardware collector tests
                monitors/   - Sampling loop tests
                utils/      - /proc parsing, platform and unit helper tests
            test_main.py    - Entry point wiring tests
        conftest.py         - Pytest configuration and global fixtures

Running Tests:
    # Run all tests
    pytest

    # Run with coverage
    pytest --cov=collector --cov-report=html

    # Run specific test file
    pytest tests/unit/collector/providers/test_cpu.py

    # Run tests matching pattern
    pytest -k dispatcher

    # Run only unit tests
    pytest -m unit
"""
