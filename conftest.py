"""
Root pytest configuration for the Django project.

pytest-django reads DJANGO_SETTINGS_MODULE from pyproject.toml; the
default here covers runs that bypass it. Shared fixtures live in
app/conftest.py and each app's tests/conftest.py.
"""

import os

import pytest

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full ledger scenarios over HTTP)
    - test_views.py, test_*_service.py, test_mutator.py, etc. → integration
    - test_models.py, test_types.py, test_state_transitions.py → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_views.py",
        "_service.py",
        "test_services.py",
        "test_mutator.py",
        "test_authentication.py",
        "test_exception_handler.py",
        "test_health.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_types.py",
        "test_soft_delete.py",
        "test_serializers.py",
        "test_state_transitions.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(filename.endswith(pattern) for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)
