"""Tests for DeviceService with a mocked gateway."""

import pytest

from opnmanager.config import StaticProfileStore
from opnmanager.device_service import (
    ARP_ENDPOINT,
    FLUSH_ARP_ENDPOINT,
    NDP_ENDPOINT,
    DeviceService,
    parse_flushed_ips,
)
from opnmanager.exceptions import DecodeError, MissingProfileError, UnauthorizedError

ARP_ROW = {
    "mac": "00:11:22:33:44:55",
    "ip": "192.168.1.10",
    "intf": "igb1",
    "expired": False,
    "expires": 1187,
    "permanent": False,
    "type": "ethernet",
    "manufacturer": "Intel Corporate",
    "hostname": "nas.lan",
    "intf_description": "LAN",
}

NDP_ROW = {
    "mac": "00:11:22:33:44:55",
    "ip": "fe80::211:22ff:fe33:4455",
    "intf": "igb1",
    "manufacturer": "",
    "intf_description": "LAN",
}

NDP_ONLY_ROW = {
    "mac": "66:77:88:99:aa:bb",
    "ip": "2001:db8::42",
    "intf": "igb1",
    "manufacturer": "Apple, Inc.",
    "intf_description": "LAN",
}


def ndp_envelope(rows):
    return {"total": len(rows), "rowCount": len(rows), "current": 1, "rows": rows}


class TestArp:
    def test_get_arp_devices(self, store, gateway, profile, make_response):
        gateway.issue.return_value = make_response(json_body=[ARP_ROW])
        devices = DeviceService(store, gateway=gateway).get_arp_devices()

        assert len(devices) == 1
        assert devices[0].device_type == "ethernet"
        assert devices[0].hostname == "nas.lan"
        gateway.issue.assert_called_once_with(
            "GET",
            f"https://fw.test:8443{ARP_ENDPOINT}",
            payload=None,
            headers=None,
            timeout_seconds=30,
            credentials=profile.credentials,
        )

    def test_non_json_body_is_decode_error(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(text="<html>login</html>")
        with pytest.raises(DecodeError):
            DeviceService(store, gateway=gateway).get_arp_devices()

    def test_object_instead_of_array_is_decode_error(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(json_body={"rows": []})
        with pytest.raises(DecodeError):
            DeviceService(store, gateway=gateway).get_arp_devices()

    def test_missing_field_is_decode_error(self, store, gateway, make_response):
        row = dict(ARP_ROW)
        del row["type"]
        gateway.issue.return_value = make_response(json_body=[row])
        with pytest.raises(DecodeError) as exc_info:
            DeviceService(store, gateway=gateway).get_arp_devices()
        assert "type" in str(exc_info.value)

    def test_custom_timeout(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(json_body=[])
        DeviceService(store, gateway=gateway, timeout=5).get_arp_devices()
        assert gateway.issue.call_args.kwargs["timeout_seconds"] == 5


class TestNdp:
    def test_get_ndp_devices_returns_rows(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(json_body=ndp_envelope([NDP_ROW, NDP_ONLY_ROW]))
        devices = DeviceService(store, gateway=gateway).get_ndp_devices()

        assert [d.mac for d in devices] == [NDP_ROW["mac"], NDP_ONLY_ROW["mac"]]
        args, kwargs = gateway.issue.call_args
        assert args == ("POST", f"https://fw.test:8443{NDP_ENDPOINT}")
        assert kwargs["payload"] == {"current": 1, "rowCount": 1000, "sort": {}, "searchPhrase": ""}

    def test_missing_rows_is_decode_error(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(json_body={"total": 0})
        with pytest.raises(DecodeError):
            DeviceService(store, gateway=gateway).get_ndp_devices()


class TestCombined:
    def test_get_combined_devices(self, store, gateway, make_response):
        gateway.issue.side_effect = [
            make_response(json_body=[ARP_ROW]),
            make_response(json_body=ndp_envelope([NDP_ROW, NDP_ONLY_ROW])),
        ]
        devices = {d.mac: d for d in DeviceService(store, gateway=gateway).get_combined_devices()}

        assert set(devices) == {ARP_ROW["mac"], NDP_ONLY_ROW["mac"]}
        nas = devices[ARP_ROW["mac"]]
        assert set(nas.ipv4_addresses) == {"192.168.1.10"}
        assert set(nas.ipv6_addresses) == {NDP_ROW["ip"]}
        assert nas.manufacturer == "Intel Corporate"
        assert nas.expires == 1187

        phone = devices[NDP_ONLY_ROW["mac"]]
        assert phone.expires is None
        assert phone.manufacturer == "Apple, Inc."

        methods = [c.args[0] for c in gateway.issue.call_args_list]
        assert methods == ["GET", "POST"]

    def test_arp_failure_stops_before_ndp(self, store, gateway):
        gateway.issue.side_effect = UnauthorizedError("Authentication failed (HTTP 401)", status=401)
        with pytest.raises(UnauthorizedError):
            DeviceService(store, gateway=gateway).get_combined_devices()
        assert gateway.issue.call_count == 1


class TestFlushArp:
    def test_parse_flushed_ips(self):
        assert parse_flushed_ips("192.168.1.5 stale\n\n10.0.0.9\n") == ["192.168.1.5", "10.0.0.9"]

    def test_parse_blank_body(self):
        assert parse_flushed_ips("  \n\n \t\n") == []

    def test_parse_keeps_duplicates_and_order(self):
        assert parse_flushed_ips("10.0.0.2 x\n10.0.0.1 y\n10.0.0.2 z") == ["10.0.0.2", "10.0.0.1", "10.0.0.2"]

    def test_flush_arp_table(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(text="192.168.1.5 (igb1) deleted\n10.0.0.9 (igb0) deleted\n")
        deleted = DeviceService(store, gateway=gateway).flush_arp_table()

        assert deleted == ["192.168.1.5", "10.0.0.9"]
        args, kwargs = gateway.issue.call_args
        assert args == ("POST", f"https://fw.test:8443{FLUSH_ARP_ENDPOINT}")
        assert kwargs["payload"] == {}


class TestMissingProfile:
    @pytest.mark.parametrize(
        "operation",
        ["get_arp_devices", "get_ndp_devices", "get_combined_devices", "flush_arp_table"],
    )
    def test_no_profile_no_request(self, gateway, operation):
        service = DeviceService(StaticProfileStore([]), gateway=gateway)
        with pytest.raises(MissingProfileError):
            getattr(service, operation)()
        gateway.issue.assert_not_called()
