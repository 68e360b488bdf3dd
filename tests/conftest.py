"""Pytest configuration for tests.

No sys.path hacks - tests should import from installed lazymerge package.
"""

import copy

import pytest

from lazymerge.kernel.schema import SchemaRegistry


CATALOG_DEFINITION = {
    "messages": [
        {
            "name": "Item",
            "fields": [
                {"number": 1, "name": "val", "type": "int32"},
                {"number": 2, "name": "label", "type": "string"},
            ],
        },
        {
            "name": "Header",
            "fields": [
                {"number": 1, "name": "id", "type": "fixed64"},
                {"number": 2, "name": "source", "type": "string"},
                {"number": 3, "name": "labels", "type": "string", "cardinality": "repeated"},
            ],
        },
        {
            "name": "Catalog",
            "fields": [
                {"number": 1, "name": "name", "type": "string"},
                {"number": 2, "name": "items", "type": "message", "cardinality": "repeated",
                 "message_type": "Item"},
                {"number": 3, "name": "pairs", "cardinality": "map", "key_type": "string",
                 "value_type": "message", "value_message_type": "Item"},
                {"number": 4, "name": "counts", "type": "int32", "cardinality": "repeated"},
                {"number": 5, "name": "tags", "type": "string", "cardinality": "repeated"},
                {"number": 6, "name": "header", "type": "message", "message_type": "Header"},
                {"number": 7, "name": "version", "type": "uint64"},
                {"number": 8, "name": "ratio", "type": "double"},
                {"number": 9, "name": "flag", "type": "bool"},
                {"number": 10, "name": "delta", "type": "sint64"},
                {"number": 11, "name": "checksums", "type": "fixed32", "cardinality": "repeated",
                 "packed": False},
                {"number": 12, "name": "text_body", "type": "string", "oneof": "body"},
                {"number": 13, "name": "blob_body", "type": "bytes", "oneof": "body"},
                {"number": 14, "name": "item_body", "type": "message", "message_type": "Item",
                 "oneof": "body"},
                {"number": 15, "name": "lookup", "cardinality": "map", "key_type": "int32",
                 "value_type": "string"},
            ],
        },
    ]
}


def pytest_addoption(parser):
    """Add gated perf test option."""
    parser.addoption(
        "--run-perf",
        action="store_true",
        default=False,
        help="Run merge performance benchmarks (gated)."
    )


def pytest_collection_modifyitems(config, items):
    """Skip perf-marked tests unless --run-perf is set."""
    if config.getoption("--run-perf"):
        return
    skip_perf = pytest.mark.skip(reason="perf tests gated; pass --run-perf")
    for item in items:
        if "perf" in item.keywords:
            item.add_marker(skip_perf)


@pytest.fixture
def registry():
    return SchemaRegistry(**CATALOG_DEFINITION)


@pytest.fixture
def catalog(registry):
    return registry.get("Catalog")


@pytest.fixture
def item_schema(registry):
    return registry.get("Item")


@pytest.fixture
def catalog_definition():
    return copy.deepcopy(CATALOG_DEFINITION)
