"""ZFS snapshot (boot environment) management calls."""

import logging
from typing import Any, Dict, Optional
from urllib.parse import quote, urlencode

from .base_service import BaseService
from .models import NewSnapshot, Snapshot, SnapshotPage

logger = logging.getLogger(__name__)

SNAPSHOTS_PREFIX = "/api/core/snapshots"
DEFAULT_ROWS_PER_PAGE = 50


def _path_uuid(uuid: str) -> str:
    return quote(uuid, safe="")


class SnapshotService(BaseService):
    def is_supported(self) -> bool:
        """True when the appliance runs on ZFS and can manage snapshots."""
        response = self._request("GET", f"{SNAPSHOTS_PREFIX}/is_supported/")
        data = self._json_object(response, "snapshot support response")
        supported = data.get("supported")
        return supported if isinstance(supported, bool) else False

    def list_snapshots(self, current_page: int = 1, rows_per_page: int = DEFAULT_ROWS_PER_PAGE) -> SnapshotPage:
        payload = {
            "current": current_page,
            "rowCount": rows_per_page,
            "sort": {},
            "searchPhrase": "",
        }
        response = self._request("POST", f"{SNAPSHOTS_PREFIX}/search", payload=payload)
        return SnapshotPage.from_dict(self._json_object(response, "snapshots"))

    def get_new_snapshot(self) -> NewSnapshot:
        response = self._request("GET", f"{SNAPSHOTS_PREFIX}/get/")
        return NewSnapshot.from_dict(self._json_object(response, "new snapshot info"))

    def get_snapshot(self, uuid: str, fetch_mode: Optional[str] = None) -> Snapshot:
        """
        Fetch one snapshot.

        fetch_mode="copy" asks the appliance for a copy suitable for cloning.
        """
        endpoint = f"{SNAPSHOTS_PREFIX}/get/{_path_uuid(uuid)}"
        if fetch_mode:
            endpoint = f"{endpoint}?{urlencode({'fetchmode': fetch_mode})}"
        response = self._request("GET", endpoint)
        return Snapshot.from_dict(self._json_object(response, "snapshot"))

    def add_snapshot(self, name: str, uuid: Optional[str] = None) -> Dict[str, Any]:
        """Create a snapshot; passing ``uuid`` clones that snapshot instead."""
        payload = {"uuid": uuid or "", "name": name}
        logger.info("Creating snapshot with payload: %s", payload)
        response = self._request("POST", f"{SNAPSHOTS_PREFIX}/add/", payload=payload)
        return dict(self._json_object(response, "add snapshot response"))

    def delete_snapshot(self, uuid: str) -> Dict[str, Any]:
        response = self._request("POST", f"{SNAPSHOTS_PREFIX}/del/{_path_uuid(uuid)}", payload={})
        return dict(self._json_object(response, "delete snapshot response"))

    def activate_snapshot(self, uuid: str) -> Dict[str, Any]:
        response = self._request("POST", f"{SNAPSHOTS_PREFIX}/activate/{_path_uuid(uuid)}", payload={})
        return dict(self._json_object(response, "activate snapshot response"))

    def update_snapshot(self, uuid: str, name: str) -> Dict[str, Any]:
        payload = {"uuid": uuid, "name": name}
        logger.info("Updating snapshot with payload: %s", payload)
        response = self._request("POST", f"{SNAPSHOTS_PREFIX}/set/{_path_uuid(uuid)}", payload=payload)
        return dict(self._json_object(response, "update snapshot response"))
