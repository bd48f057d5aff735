# tests/conftest.py
"""Shared fixtures.

Loads run against a tiny Cardinality so an end-to-end CSV load of a couple
of warehouses finishes in well under a second.
"""

from __future__ import annotations

import os

import pytest
from hypothesis import settings

from tpccload.generator import Cardinality

settings.register_profile("ci", max_examples=100, deadline=None)
settings.register_profile("debug", max_examples=10, deadline=None)
settings.load_profile(os.environ.get("HYPOTHESIS_PROFILE", "ci"))

TINY = Cardinality(
    items=50,
    districts=2,
    customers=30,
    orders=30,
    new_orders=9,
    min_order_lines=5,
    max_order_lines=15,
)


@pytest.fixture
def tiny() -> Cardinality:
    return TINY


@pytest.fixture
def write_props(tmp_path):
    """Write a properties file from keyword arguments and return its path."""

    def _write(**props: object) -> str:
        path = tmp_path / "load.properties"
        lines = ["# generated by the test suite"]
        lines += [f"{k}={v}" for k, v in props.items()]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return str(path)

    return _write


def read_records(path) -> list[str]:
    with open(path, encoding="utf-8") as f:
        return f.read().splitlines()
