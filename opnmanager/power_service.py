import logging

from .base_service import BaseService
from .exceptions import DecodeError

logger = logging.getLogger(__name__)

REBOOT_ENDPOINT = "/api/core/system/reboot"


class PowerService(BaseService):
    def reboot(self) -> str:
        """Ask the appliance to reboot and return the status string it reports."""
        logger.warning("Requesting firewall reboot")
        response = self._request(
            "POST",
            REBOOT_ENDPOINT,
            payload={},
            headers={"Content-Type": "application/json"},
        )
        data = self._json_object(response, "reboot response")
        status = data.get("status")
        if not isinstance(status, str):
            raise DecodeError("Failed to parse reboot response: missing 'status' string", url=response.url)
        return status
