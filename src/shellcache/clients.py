"""Open documents controlled by the interception layer.

The host runtime tracks which generation controls each open page. A new
generation that activates *claims* every open client, so pages loaded under
the previous version are served by the new logic without a reload.
"""

from __future__ import annotations

from typing import Optional


class ClientRegistry:
    """Maps client ids to the version that controls them (``None`` = uncontrolled)."""

    def __init__(self) -> None:
        self._controllers: dict[str, Optional[str]] = {}

    def __len__(self) -> int:
        return len(self._controllers)

    def __contains__(self, client_id: object) -> bool:
        return client_id in self._controllers

    def register(self, client_id: str, controller: Optional[str] = None) -> None:
        self._controllers[client_id] = controller

    def unregister(self, client_id: str) -> None:
        self._controllers.pop(client_id, None)

    def controller(self, client_id: str) -> Optional[str]:
        return self._controllers.get(client_id)

    def claim(self, version: str) -> list[str]:
        """Make *version* the controller of every open client.

        Returns:
            Ids of the clients whose controller changed, in registration order.
        """
        claimed = [cid for cid, ctl in self._controllers.items() if ctl != version]
        for client_id in claimed:
            self._controllers[client_id] = version
        return claimed
