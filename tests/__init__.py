"""Test suite package marker."""

import pytest

# Ensure helper modules used by the fixtures are assertion-rewritten before import.
pytest.register_assert_rewrite("tests.assertions")
pytest.register_assert_rewrite("tests.fake_transport")
