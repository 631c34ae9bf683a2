"""
Wallet-side collaborator.

The dHealth wallet exposes its app store to plugins through an IPC bridge.
A plugin asks for a named getter and receives the getter's value. This
module wraps the two getters the health-to-earn plugin needs.

It is the interface consumed by the wallet-side plugin and is not wired into
the HTTP app: the API never talks to a wallet. Import it directly,
``from health_to_earn.wallet import WalletService``.
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Protocol

import httpx

from .address import Address, validate
from .errors import InvalidAddress

logger = logging.getLogger(__name__)

PLUGIN_NAME = "@dhealthdapps/health-to-earn"
NETWORK_GETTER = "network/repositoryFactory"
SIGNER_GETTER = "account/currentSignerAddress"


class StoreBridge(Protocol):
    async def request_getter(self, plugin: str, path: str) -> Mapping[str, Any]:
        ...


class WalletConnectionError(Exception):
    pass


@dataclass(frozen=True)
class NetworkConnection:
    url: str
    websocket_url: str | None = None


class WalletService:
    def __init__(self, bridge: StoreBridge, timeout: float = 10.0, transport: httpx.AsyncBaseTransport | None = None):
        self.bridge = bridge
        self.timeout = timeout
        self._transport = transport

    async def _getter(self, path: str) -> Mapping[str, Any]:
        try:
            info = await self.bridge.request_getter(PLUGIN_NAME, path)
        except Exception as e:
            raise WalletConnectionError(f'Wallet getter "{path}" failed. Reason: {e}') from e
        logger.debug("%s from IPC: %s", path, info)
        if not isinstance(info, Mapping):
            raise WalletConnectionError(f'Wallet getter "{path}" returned {type(info).__name__}')
        return info

    async def get_network_connection(self) -> NetworkConnection:
        """Read the node endpoint the wallet is connected to and check it answers."""
        info = await self._getter(NETWORK_GETTER)
        url = info.get("url")
        if not url:
            raise WalletConnectionError("Wallet did not provide a node url")

        try:
            async with httpx.AsyncClient(base_url=url, timeout=self.timeout, transport=self._transport) as c:
                r = await c.get("/node/health")
                r.raise_for_status()
        except httpx.HTTPError as e:
            raise WalletConnectionError(
                f'Connection to endpoint "{url}" could not be established. Reason: {e}'
            ) from e

        return NetworkConnection(url=url, websocket_url=info.get("websocketUrl"))

    async def get_current_signer(self) -> Address:
        info = await self._getter(SIGNER_GETTER)
        try:
            return validate(info.get("address"))
        except InvalidAddress as e:
            raise WalletConnectionError(f"Wallet returned an invalid signer address. Reason: {e}") from e
