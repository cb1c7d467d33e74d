import logging
from typing import List

from .base_service import BaseService
from .exceptions import DecodeError
from .models import ArpRecord, CombinedDevice, NdpRecord
from .reconcile import merge_devices

logger = logging.getLogger(__name__)

ARP_ENDPOINT = "/api/diagnostics/interface/getArp"
NDP_ENDPOINT = "/api/diagnostics/interface/search_ndp/"
FLUSH_ARP_ENDPOINT = "/api/diagnostics/interface/flushArp"

NDP_SEARCH_PAYLOAD = {
    "current": 1,
    "rowCount": 1000,
    "sort": {},
    "searchPhrase": "",
}


def parse_flushed_ips(body: str) -> List[str]:
    """Extract the leading IP of every non-blank line of a flushArp response."""
    deleted: List[str] = []
    for line in body.splitlines():
        tokens = line.split()
        if tokens:
            deleted.append(tokens[0])
    return deleted


class DeviceService(BaseService):
    """ARP/NDP neighbor tables and the combined device inventory."""

    def get_arp_devices(self) -> List[ArpRecord]:
        response = self._request("GET", ARP_ENDPOINT)
        data = self._json(response, "ARP response")
        if not isinstance(data, list):
            raise DecodeError(
                f"Failed to parse ARP response: expected a JSON array, got {type(data).__name__}",
                url=response.url,
            )
        devices = [ArpRecord.from_dict(row) for row in data]
        logger.info("Fetched %s ARP entries", len(devices))
        return devices

    def get_ndp_devices(self) -> List[NdpRecord]:
        response = self._request("POST", NDP_ENDPOINT, payload=dict(NDP_SEARCH_PAYLOAD))
        data = self._json_object(response, "NDP response")
        rows = data.get("rows")
        if not isinstance(rows, list):
            raise DecodeError("Failed to parse NDP response: missing 'rows' list", url=response.url)
        devices = [NdpRecord.from_dict(row) for row in rows]
        logger.info("Fetched %s NDP entries (total reported: %s)", len(devices), data.get("total"))
        return devices

    def get_combined_devices(self) -> List[CombinedDevice]:
        arp = self.get_arp_devices()
        ndp = self.get_ndp_devices()
        return merge_devices(arp, ndp)

    def flush_arp_table(self) -> List[str]:
        """Flush the appliance ARP table and return the IPs it reported as deleted."""
        response = self._request("POST", FLUSH_ARP_ENDPOINT, payload={})
        deleted = parse_flushed_ips(response.text)
        logger.info("Flushed %s ARP entries", len(deleted))
        return deleted
