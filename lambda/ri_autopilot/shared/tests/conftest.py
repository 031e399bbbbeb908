"""
Shared tests configuration - imports shared fixtures.

All tests mock ONLY AWS clients and use aws_mock_builder for response shapes.
"""

import importlib.util
from pathlib import Path


# Load shared conftest module from absolute path
_shared_conftest_path = Path(__file__).parents[3] / "tests" / "conftest.py"
_spec = importlib.util.spec_from_file_location("shared_conftest", _shared_conftest_path)
_shared_conftest = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(_shared_conftest)

# Re-export all fixtures from shared conftest
aws_response = _shared_conftest.aws_response
aws_reservation_recommendation_rds = _shared_conftest.aws_reservation_recommendation_rds
aws_recommendation_compute_sp = _shared_conftest.aws_recommendation_compute_sp
aws_mock_builder = _shared_conftest.aws_mock_builder
make_recommendation = _shared_conftest.make_recommendation
make_commitment = _shared_conftest.make_commitment
