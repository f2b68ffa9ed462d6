"""
Unit tests for the create_admin command line script.
"""
import os
import sys
from unittest.mock import patch

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "../../scripts"))

import create_admin  # noqa: E402

from impatient_review.core.exceptions import ConflictError  # noqa: E402


@pytest.mark.unit
class TestCreateAdminScript:

    def test_password_mismatch(self):
        with patch.object(create_admin, "getpass", side_effect=["one", "two"]), \
                patch.object(create_admin, "create_admin") as mock_create:
            assert create_admin.main(["a@x.com", "A"]) == 1
        mock_create.assert_not_called()

    def test_success(self):
        with patch.object(create_admin, "getpass", side_effect=["pw", "pw"]), \
                patch.object(create_admin, "create_admin", return_value=7) as mock_create:
            assert create_admin.main(["a@x.com", "A"]) == 0
        mock_create.assert_called_once_with("a@x.com", "A", "pw")

    def test_duplicate_email(self):
        with patch.object(create_admin, "getpass", side_effect=["pw", "pw"]), \
                patch.object(create_admin, "create_admin", side_effect=ConflictError("Email already registered")):
            assert create_admin.main(["a@x.com", "A"]) == 1
