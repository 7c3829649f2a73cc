"""Unit tests for mapping raw records to display objects."""

import datetime

import pytest

from vgcli.connection import Connection
from vgcli.mapper import MappedResource, epoch_to_datetime, expect_type, map_record, map_records
from vgcli.resources import get_definition


class TestEpochToDatetime:
    """Timestamps: 0 or absent means no value, never 1970."""

    @pytest.mark.parametrize("value", [0, None, "0", -5, "soon", True])
    def test_no_value(self, value: object) -> None:
        assert epoch_to_datetime(value) is None

    def test_nonzero_is_local_time(self) -> None:
        ts = 1700000000
        result = epoch_to_datetime(ts)
        assert result is not None
        assert result.tzinfo is not None
        assert result.timestamp() == ts
        assert result == datetime.datetime.fromtimestamp(ts).astimezone()

    def test_numeric_string(self) -> None:
        result = epoch_to_datetime("1700000000")
        assert result is not None
        assert result.timestamp() == 1700000000


class TestMapRecord:
    """Tests for map_record."""

    def test_vm_record(self) -> None:
        conn = Connection(server="verge.test", token="t")
        record = {
            "$key": 7,
            "name": "web01",
            "power_state": "running",
            "on_power_loss": "last_state",
            "created": 1700000000,
            "modified": 0,
            "custom": "kept",
        }
        vm = map_record(get_definition("vm"), record, conn)

        assert vm.resource_type == "VergeVM"
        assert vm.key == 7
        assert vm["Name"] == "web01"
        assert vm["PowerState"] == "Running"
        assert vm["PowerStateRaw"] == "running"
        assert vm["PowerLossPolicy"] == "Last State"
        assert vm["PowerLossPolicyRaw"] == "last_state"
        assert isinstance(vm["Created"], datetime.datetime)
        assert vm["Modified"] is None
        assert vm["custom"] == "kept"
        assert vm.raw == record
        assert vm.connection is conn

    def test_absent_default_timestamp_is_none(self) -> None:
        vm = map_record(get_definition("vm"), {"$key": 1, "name": "a"})
        assert "Created" in vm
        assert vm["Created"] is None

    def test_unknown_enum_value_is_kept(self) -> None:
        net = map_record(get_definition("network"), {"$key": 1, "type": "quantum"})
        assert net["Type"] == "quantum"
        assert net["TypeRaw"] == "quantum"

    def test_generic_definition(self) -> None:
        item = map_record(get_definition("site_syncs"), {"$key": 3, "name": "dr"})
        assert item.resource_type == "VergeSiteSyncs"
        assert item["Key"] == 3
        assert item["name"] == "dr"

    def test_to_dict(self) -> None:
        item = map_record(get_definition("tag"), {"$key": 1, "name": "prod", "created": 1700000000})
        data = item.to_dict()
        assert data["ResourceType"] == "VergeTag"
        assert isinstance(data["Created"], str)
        assert data["Name"] == "prod"

    def test_map_records(self) -> None:
        items = map_records("vnets", [{"$key": 1}, {"$key": 2}])
        assert [i.key for i in items] == [1, 2]
        assert all(i.resource_type == "VergeNetwork" for i in items)


class TestExpectType:
    """Tests for pipeline type checks."""

    def test_matching_type(self) -> None:
        item = MappedResource("VergeVM", 1, {}, {})
        assert expect_type(item, "VergeVM") is item

    def test_wrong_tag(self) -> None:
        item = MappedResource("VergeNetwork", 1, {}, {})
        with pytest.raises(TypeError, match="VergeNetwork"):
            expect_type(item, "VergeVM")

    def test_not_a_mapped_resource(self) -> None:
        with pytest.raises(TypeError):
            expect_type({"$key": 1}, "VergeVM")
