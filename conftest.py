import pytest

from intcalc import VariableStore
from intcalc_repl import REPL


@pytest.fixture
def store():
    return VariableStore()


@pytest.fixture
def repl(store):
    return REPL(store=store, interactive=False)


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    if report.when == "call":
        print(f"TEST: {item.name} - {'PASSED' if report.passed else 'FAILED'}")
