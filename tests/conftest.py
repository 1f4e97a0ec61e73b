"""Pytest configuration and fixtures."""
import pytest

from nonl.services.syntax_profiles import C_LIKE, PYTHON, RUST


@pytest.fixture
def c_profile():
    return C_LIKE


@pytest.fixture
def python_profile():
    return PYTHON


@pytest.fixture
def rust_profile():
    return RUST


@pytest.fixture(scope="session")
def qapp():
    """Single QCoreApplication for tests that need Qt timers and signals."""
    from PySide6.QtCore import QCoreApplication

    app = QCoreApplication.instance()
    if app is None:
        app = QCoreApplication([])
    yield app


@pytest.fixture
def manager(qapp, tmp_path):
    """NonlManager rooted at a temporary project directory."""
    from nonl.nonl_manager import NonlManager

    mgr = NonlManager(str(tmp_path))
    yield mgr
    mgr.shutdown()
