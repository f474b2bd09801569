"""
Unit Test Layer Configuration

Structure:
    tests/unit/
    ├── core/           Request context, config
    ├── notification/   Email templates, dispatch results
    └── shipment/       Reference numbers, normalization, display mapping

Usage:
    pytest tests/unit -v
"""
import os
import sys

import pytest

# Add project root
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))


def pytest_collection_modifyitems(config, items):
    for item in items:
        if "/unit/" in str(item.fspath).replace("\\", "/"):
            item.add_marker(pytest.mark.unit)
