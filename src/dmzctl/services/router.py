"""Router management API client.

Builds the firewall/DMZ "set" command and posts it to the router's
``/stok=<token>/ds`` endpoint. One attempt per call, no retries.
"""

import json
from typing import Any, Optional

import requests

from dmzctl.core.config import Settings
from dmzctl.core.exceptions import RouterError
from dmzctl.core.output import console


# Seconds to wait for the router before giving up on a submission
DEFAULT_TIMEOUT = 10

# The DMZ forwards every WAN port
DMZ_WAN_PORT = "0"


def build_payload(settings: Settings) -> dict[str, Any]:
    """Build the nested firewall command for the given settings."""
    return {
        "firewall": {
            "dmz": {
                "enable": settings.dmz_enable,
                "dest_ip": settings.dmz_dest_ip,
                "wan_port": DMZ_WAN_PORT,
                "dest_ip6": settings.dmz_dest_ip6,
            },
            "ipv6_firewall": {
                "enable": settings.ipv6_firewall_enable,
            },
        },
        "method": "set",
    }


def build_url(settings: Settings) -> str:
    """Management endpoint URL with the session token embedded in the path."""
    return f"http://{settings.router_ip}/stok={settings.stok}/ds"


class RouterClient:
    """Submits settings to the router.

    Success is an HTTP 200; the response body is handed back either way so
    it can be shown to the operator.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self._session = session or requests.Session()
        self.timeout = timeout

    def apply(self, settings: Settings) -> tuple[bool, str]:
        """Send the settings to the router.

        Args:
            settings: Settings to apply

        Returns:
            Tuple of (ok, response text or failure description)
        """
        try:
            body = json.dumps(build_payload(settings), ensure_ascii=False)
        except (TypeError, ValueError) as e:
            return False, f"错误: {e}"

        url = build_url(settings)
        console.debug(f"POST http://{settings.router_ip}/stok=****/ds")

        try:
            response = self._session.post(
                url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self.timeout,
                stream=True,
            )
        except (requests.RequestException, ValueError) as e:
            console.warn(f"Router request failed: {e}")
            return False, f"请求错误: {e}"

        with response:
            try:
                text = response.content.decode("utf-8", errors="replace")
            except requests.RequestException as e:
                console.warn(f"Reading router response failed: {e}")
                return False, f"读取响应错误: {e}"

        ok = response.status_code == 200
        if ok:
            console.info(f"Router accepted settings (HTTP {response.status_code})")
        else:
            console.warn(f"Router rejected settings (HTTP {response.status_code})")
        return ok, text

    def apply_or_raise(self, settings: Settings) -> str:
        """Send the settings, raising instead of returning a failure flag.

        Raises:
            RouterError: If the request fails or the router does not answer 200
        """
        ok, text = self.apply(settings)
        if not ok:
            raise RouterError(
                f"Router did not accept the settings ({settings.router_ip or 'no router address'})",
                response_text=text,
                hint="Check router_ip and refresh the stok token from the router web UI",
            )
        return text
