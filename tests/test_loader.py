"""Tests for heap snapshot loading."""

import json

import pytest

from memwatch_diff.errors import CorruptData, InvalidFormat, MissingSection, SnapshotError
from memwatch_diff.loader import describe_file, load_snapshot, parse_snapshot


class TestLoadSnapshot:
    """Well-formed snapshots"""

    def test_tables_returned_unchanged(self, snapshot_data, write_snapshot):
        data = snapshot_data({"Array": (3, 300), "Map": (1, 64)})
        snapshot = load_snapshot(write_snapshot(data))

        assert snapshot.node_fields == data["snapshot"]["meta"]["node_fields"]
        assert snapshot.nodes == data["nodes"]
        assert snapshot.edges == []
        assert snapshot.strings == data["strings"]
        assert snapshot.node_count == 4
        assert snapshot.edge_count == 0

    def test_type_enumeration_taken_from_type_field(self, snapshot_data, write_snapshot):
        snapshot = load_snapshot(write_snapshot(snapshot_data({"Array": (1, 10)})))
        assert snapshot.node_types[3] == "object"
        assert snapshot.edge_types[2] == "property"

    def test_source_describes_file(self, snapshot_data, write_snapshot):
        path = write_snapshot(snapshot_data({"Array": (1, 10)}), "heap-1.heapsnapshot")
        snapshot = load_snapshot(path)

        assert snapshot.source is not None
        assert snapshot.source.filename == "heap-1.heapsnapshot"
        assert snapshot.source.file_size == path.stat().st_size
        assert snapshot.source.modified_at.tzinfo is not None

    def test_missing_type_enumeration_is_allowed(self, snapshot_data):
        data = snapshot_data({"Array": (2, 20)})
        del data["snapshot"]["meta"]["node_types"]
        snapshot = parse_snapshot(data)
        assert snapshot.node_types == []
        assert snapshot.node_count == 2

    def test_describe_file_does_not_parse(self, write_snapshot):
        path = write_snapshot("not json at all")
        source = describe_file(path)
        assert source.file_size == len("not json at all")


class TestLoaderErrors:
    """Malformed input is rejected with a specific error"""

    def test_not_json(self, write_snapshot):
        with pytest.raises(InvalidFormat):
            load_snapshot(write_snapshot('{"snapshot": {'))

    def test_not_utf8(self, tmp_path):
        path = tmp_path / "binary.heapsnapshot"
        path.write_bytes(b"\xff\xfe\x00garbage")
        with pytest.raises(InvalidFormat):
            load_snapshot(path)

    def test_top_level_not_object(self, write_snapshot):
        with pytest.raises(InvalidFormat):
            load_snapshot(write_snapshot("[1, 2, 3]"))

    def test_section_of_wrong_kind(self, snapshot_data):
        data = snapshot_data({"Array": (1, 10)})
        data["nodes"] = {"not": "a list"}
        with pytest.raises(InvalidFormat):
            parse_snapshot(data)

    @pytest.mark.parametrize("section", ["nodes", "edges", "strings", "snapshot"])
    def test_missing_top_level_section(self, snapshot_data, section):
        data = snapshot_data({"Array": (1, 10)})
        del data[section]
        with pytest.raises(MissingSection):
            parse_snapshot(data)

    @pytest.mark.parametrize("field_list", ["node_fields", "edge_fields"])
    def test_missing_layout(self, snapshot_data, field_list):
        data = snapshot_data({"Array": (1, 10)})
        del data["snapshot"]["meta"][field_list]
        with pytest.raises(MissingSection):
            parse_snapshot(data)

    def test_layout_without_self_size(self, snapshot_data):
        data = snapshot_data({"Array": (1, 10)})
        data["snapshot"]["meta"]["node_fields"] = ["type", "name", "id", "size", "edge_count", "a", "b"]
        with pytest.raises(MissingSection, match="self_size"):
            parse_snapshot(data)

    def test_truncated_node_array(self, snapshot_data, write_snapshot):
        data = snapshot_data({"Array": (3, 300)})
        data["nodes"] = data["nodes"][:-2]
        with pytest.raises(CorruptData, match="not a multiple"):
            load_snapshot(write_snapshot(data))

    @pytest.mark.parametrize("bad_value", ["12", None, 1.5, -5, True])
    def test_invalid_self_size(self, snapshot_data, write_snapshot, bad_value):
        data = snapshot_data({"Array": (1, 10), "Map": (1, 20)})
        size_offset = data["snapshot"]["meta"]["node_fields"].index("self_size")
        data["nodes"][size_offset] = bad_value
        with pytest.raises(CorruptData, match="node 0 has invalid 'self_size'"):
            load_snapshot(write_snapshot(data))

    @pytest.mark.parametrize("field_name", ["type", "name"])
    def test_invalid_index_field(self, snapshot_data, field_name):
        data = snapshot_data({"Array": (2, 20)})
        stride = len(data["snapshot"]["meta"]["node_fields"])
        offset = data["snapshot"]["meta"]["node_fields"].index(field_name)
        data["nodes"][stride + offset] = "Array"
        with pytest.raises(CorruptData, match=f"node 1 has invalid '{field_name}'"):
            parse_snapshot(data)

    def test_truncated_edge_array(self, snapshot_data):
        data = snapshot_data({"Array": (1, 10)})
        data["edges"] = [2, 1]
        with pytest.raises(CorruptData):
            parse_snapshot(data)

    def test_errors_carry_path(self, write_snapshot):
        path = write_snapshot("garbage")
        with pytest.raises(SnapshotError) as excinfo:
            load_snapshot(path)
        assert excinfo.value.path == path
        assert str(path) in str(excinfo.value)

    def test_errors_are_value_errors(self, write_snapshot):
        path = write_snapshot(json.dumps({"snapshot": {}}))
        with pytest.raises(ValueError):
            load_snapshot(path)
