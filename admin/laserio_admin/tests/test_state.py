import pytest

from laserio_admin.state import UIState
from laserio_admin.tasks import ImmediateRunner
from test_support import require


def test_ui_state_notifies_and_unsubscribes() -> None:
    state = UIState()
    seen = []
    state.subscribe("loading", seen.append)

    state.update("loading", True)
    state.unsubscribe("loading", seen.append)
    state.unsubscribe("loading", seen.append)
    state.update("loading", False)

    require(seen == [True], f"Unexpected seen {seen!r}")
    require(state.get("loading") is False, "Expected stored value")
    require(state.get("missing", "default") == "default", "Expected default for missing key")


def test_observer_may_unsubscribe_during_notification() -> None:
    state = UIState()
    seen = []

    def once(value):
        seen.append(value)
        state.unsubscribe("key", once)

    state.subscribe("key", once)
    state.subscribe("key", lambda value: seen.append(("second", value)))
    state.update("key", 1)
    state.update("key", 2)

    require(seen == [1, ("second", 1), ("second", 2)], f"Unexpected seen {seen!r}")


def test_immediate_runner_routes_outcomes() -> None:
    runner = ImmediateRunner()
    results, errors = [], []

    runner.submit(lambda: 5, results.append, errors.append)
    runner.submit(lambda: 1 / 0, results.append, errors.append)

    require(results == [5], f"Unexpected results {results!r}")
    require(isinstance(errors[0], ZeroDivisionError), "Expected the raised exception delivered")


def test_immediate_runner_reraises_without_error_callback() -> None:
    with pytest.raises(ZeroDivisionError):
        ImmediateRunner().submit(lambda: 1 / 0)
