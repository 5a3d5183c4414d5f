import pytest


def pytest_addoption(parser):
    """Adds the --run-slow command-line option to pytest."""
    parser.addoption(
        "--run-slow", action="store_true", default=False, help="run slow tests"
    )
    parser.addoption(
        "--run-integration", action="store_true", default=False,
        help="run integration tests (needs a local Tesseract install)"
    )
    parser.addoption(
        "--run-all", action="store_true", default=False,
        help="run all tests, including slow and integration tests"
    )

def pytest_configure(config):
    config.addinivalue_line("markers", "slow: mark test as slow to run")
    config.addinivalue_line("markers", "integration: needs a local Tesseract installation")

def pytest_collection_modifyitems(config, items):
    """
    Skips tests marked as 'slow' or 'integration' unless asked for.
    """
    skip_slow = True
    skip_integration = True

    if config.getoption("--run-all"):
        skip_slow = False
        skip_integration = False
    else:
        if config.getoption("--run-slow"):
            skip_slow = False
        if config.getoption("--run-integration"):
            skip_integration = False

    if skip_slow:
        skip_slow = pytest.mark.skip(
            reason="need --run-slow or --run-all option to run")
        for item in items:
            if "slow" in item.keywords:
                item.add_marker(skip_slow)

    if skip_integration:
        skip_integration = pytest.mark.skip(
            reason="need --run-integration or --run-all option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)
