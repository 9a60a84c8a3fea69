"""Configuration for pytest."""

import pytest


def pytest_addoption(parser: pytest.Parser) -> None:
    """Add the ``--slow`` option for tests needing VTK surface extraction or rendering.

    References
    ----------
    .. [1] https://docs.pytest.org/en/stable/example/simple.html#control-skipping-of-tests-according-to-command-line-option
    """
    parser.addoption(
        "--slow",
        action="store_true",
        default=False,
        help="Run tests that build meshes from voxels or render scenes",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register the ``slow`` marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Skip tests marked slow unless ``--slow`` is given."""
    if config.getoption("--slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
