"""Tests for the thin reboot and snapshot wrappers."""

import pytest

from opnmanager.exceptions import DecodeError
from opnmanager.power_service import REBOOT_ENDPOINT, PowerService
from opnmanager.snapshot_service import SnapshotService

BASE = "https://fw.test:8443"

SNAPSHOT = {
    "uuid": "5e1c-01",
    "name": "pre-upgrade",
    "active": "NR",
    "mountpoint": "-",
    "size": "1.2G",
    "created_str": "2024-05-01 10:00",
    "created": 1714557600,
}


class TestPowerService:
    def test_reboot(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(json_body={"status": "ok"})
        assert PowerService(store, gateway=gateway).reboot() == "ok"

        args, kwargs = gateway.issue.call_args
        assert args == ("POST", f"{BASE}{REBOOT_ENDPOINT}")
        assert kwargs["payload"] == {}
        assert kwargs["headers"] == {"Content-Type": "application/json"}

    def test_reboot_without_status_is_decode_error(self, store, gateway, make_response):
        gateway.issue.return_value = make_response(json_body={"result": "ok"})
        with pytest.raises(DecodeError):
            PowerService(store, gateway=gateway).reboot()


class TestSnapshotService:
    def _service(self, store, gateway, make_response, body):
        gateway.issue.return_value = make_response(json_body=body)
        return SnapshotService(store, gateway=gateway)

    def test_is_supported(self, store, gateway, make_response):
        assert self._service(store, gateway, make_response, {"supported": True}).is_supported() is True
        assert gateway.issue.call_args.args == ("GET", f"{BASE}/api/core/snapshots/is_supported/")

    @pytest.mark.parametrize("body", [{}, {"supported": "yes"}, {"supported": False}])
    def test_is_supported_defaults_to_false(self, store, gateway, make_response, body):
        assert self._service(store, gateway, make_response, body).is_supported() is False

    def test_list_snapshots(self, store, gateway, make_response):
        body = {"total": 1, "rowCount": 20, "current": 2, "rows": [SNAPSHOT]}
        page = self._service(store, gateway, make_response, body).list_snapshots(current_page=2, rows_per_page=20)

        assert page.total == 1
        assert page.current == 2
        assert page.rows[0].name == "pre-upgrade"
        assert page.rows[0].created == 1714557600
        args, kwargs = gateway.issue.call_args
        assert args == ("POST", f"{BASE}/api/core/snapshots/search")
        assert kwargs["payload"] == {"current": 2, "rowCount": 20, "sort": {}, "searchPhrase": ""}

    def test_list_snapshots_bad_row_is_decode_error(self, store, gateway, make_response):
        row = dict(SNAPSHOT, created="yesterday")
        body = {"total": 1, "rowCount": 20, "current": 1, "rows": [row]}
        with pytest.raises(DecodeError):
            self._service(store, gateway, make_response, body).list_snapshots()

    def test_get_new_snapshot(self, store, gateway, make_response):
        new = self._service(store, gateway, make_response, {"name": "snap-20240501", "uuid": ""}).get_new_snapshot()
        assert new.name == "snap-20240501"
        assert gateway.issue.call_args.args == ("GET", f"{BASE}/api/core/snapshots/get/")

    def test_get_snapshot(self, store, gateway, make_response):
        snap = self._service(store, gateway, make_response, SNAPSHOT).get_snapshot("5e1c-01")
        assert snap.uuid == "5e1c-01"
        assert gateway.issue.call_args.args == ("GET", f"{BASE}/api/core/snapshots/get/5e1c-01")

    def test_get_snapshot_with_fetch_mode(self, store, gateway, make_response):
        self._service(store, gateway, make_response, SNAPSHOT).get_snapshot("5e1c-01", fetch_mode="copy")
        assert gateway.issue.call_args.args == ("GET", f"{BASE}/api/core/snapshots/get/5e1c-01?fetchmode=copy")

    def test_add_snapshot(self, store, gateway, make_response):
        result = self._service(store, gateway, make_response, {"status": "ok"}).add_snapshot("nightly")
        assert result == {"status": "ok"}
        args, kwargs = gateway.issue.call_args
        assert args == ("POST", f"{BASE}/api/core/snapshots/add/")
        assert kwargs["payload"] == {"uuid": "", "name": "nightly"}

    def test_clone_snapshot(self, store, gateway, make_response):
        self._service(store, gateway, make_response, {"status": "ok"}).add_snapshot("copy", uuid="5e1c-01")
        assert gateway.issue.call_args.kwargs["payload"] == {"uuid": "5e1c-01", "name": "copy"}

    @pytest.mark.parametrize(
        "method, path",
        [
            ("delete_snapshot", "/api/core/snapshots/del/5e1c-01"),
            ("activate_snapshot", "/api/core/snapshots/activate/5e1c-01"),
        ],
    )
    def test_uuid_actions(self, store, gateway, make_response, method, path):
        result = getattr(self._service(store, gateway, make_response, {"status": "ok"}), method)("5e1c-01")
        assert result == {"status": "ok"}
        args, kwargs = gateway.issue.call_args
        assert args == ("POST", f"{BASE}{path}")
        assert kwargs["payload"] == {}

    def test_update_snapshot(self, store, gateway, make_response):
        self._service(store, gateway, make_response, {"status": "ok"}).update_snapshot("5e1c-01", "renamed")
        args, kwargs = gateway.issue.call_args
        assert args == ("POST", f"{BASE}/api/core/snapshots/set/5e1c-01")
        assert kwargs["payload"] == {"uuid": "5e1c-01", "name": "renamed"}
