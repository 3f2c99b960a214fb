"""Tests for the block registry and declarations."""

from mssql_app.blocks import BLOCKS, get_block


def test_all_blocks_registered() -> None:
    assert set(BLOCKS) == {
        "executeQuery",
        "executeCommand",
        "bulkInsert",
        "streamQuery",
        "getTableInfo",
    }
    assert get_block("nope") is None


def test_declarations_are_complete() -> None:
    for block_id, block in BLOCKS.items():
        d = block.describe()
        assert d["id"] == block_id
        assert d["name"] and d["description"] and d["category"]
        assert d["inputs"]["default"]["config"]
        out = d["outputs"]["default"]
        assert out["default"] is True
        assert out["possiblePrimaryParents"] == ["default"]
        assert out["type"]["type"] == "object"


def test_stream_query_declares_batch_fields() -> None:
    out = get_block("streamQuery").describe()["outputs"]["default"]["type"]
    assert out["required"] == ["batchNumber", "rows", "rowCount", "hasMore"]
