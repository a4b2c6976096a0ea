"""Program log subscription — websocket logsSubscribe feeding an EventRegistry.

Single connection, one subscription (mentions: [program_id]). Auto-reconnects
with exponential backoff until stop() is called.
"""

from __future__ import annotations

import asyncio
import json
from enum import Enum

import websockets
from loguru import logger
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import PUMP_PROGRAM_ID
from pumpbundler.protocol.events import EventRegistry, parse_program_logs
from pumpbundler.trading.ledger import Commitment

INITIAL_RECONNECT_DELAY = 5.0
MAX_RECONNECT_DELAY = 60.0


class ConnectionState(Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    ACTIVE = "active"


class LogSubscriber:
    """Streams decoded program events to registry listeners."""

    def __init__(
        self,
        ws_url: str,
        registry: EventRegistry,
        *,
        program_id: Pubkey = PUMP_PROGRAM_ID,
        commitment: Commitment = Commitment.CONFIRMED,
    ) -> None:
        self._ws_url = ws_url
        self._registry = registry
        self._program_id = program_id
        self._commitment = commitment
        self._ws: websockets.WebSocketClientProtocol | None = None
        self._state = ConnectionState.DISCONNECTED
        self._running = False
        self._reconnect_delay = INITIAL_RECONNECT_DELAY
        self._message_count = 0

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def message_count(self) -> int:
        return self._message_count

    def subscribe_request(self) -> str:
        return json.dumps(
            {
                "jsonrpc": "2.0",
                "id": 1,
                "method": "logsSubscribe",
                "params": [
                    {"mentions": [str(self._program_id)]},
                    {"commitment": self._commitment.value},
                ],
            }
        )

    async def run(self) -> None:
        """Connect and listen. Auto-reconnects on disconnect."""
        self._running = True
        while self._running:
            try:
                self._state = ConnectionState.CONNECTING
                async with websockets.connect(
                    self._ws_url,
                    ping_interval=30,
                    ping_timeout=10,
                    close_timeout=5,
                ) as ws:
                    self._ws = ws
                    self._state = ConnectionState.CONNECTED
                    self._reconnect_delay = INITIAL_RECONNECT_DELAY
                    await ws.send(self.subscribe_request())
                    self._state = ConnectionState.ACTIVE
                    logger.info(f"[EVENTS] Subscribed to logs of {str(self._program_id)[:12]}")
                    async for message in ws:
                        await self.handle_message(message)
            except (
                websockets.ConnectionClosed,
                ConnectionError,
                OSError,
                TimeoutError,
            ) as e:
                logger.warning(f"[EVENTS] WS disconnected: {e}")
                self._state = ConnectionState.DISCONNECTED
                self._ws = None
                if self._running:
                    logger.info(f"[EVENTS] Reconnecting in {self._reconnect_delay:.0f}s...")
                    await asyncio.sleep(self._reconnect_delay)
                    self._reconnect_delay = min(self._reconnect_delay * 2, MAX_RECONNECT_DELAY)

    async def handle_message(self, message: str | bytes) -> int:
        """Decode one websocket frame and dispatch its events. Returns events dispatched."""
        self._message_count += 1
        try:
            data = json.loads(message)
        except json.JSONDecodeError:
            return 0

        if data.get("method") != "logsNotification":
            if "result" in data:
                logger.debug(f"[EVENTS] Subscription id {data['result']}")
            return 0

        result = data.get("params", {}).get("result", {})
        value = result.get("value") or {}
        if value.get("err") is not None:
            return 0

        slot = result.get("context", {}).get("slot", 0)
        signature = value.get("signature", "")
        dispatched = 0
        for event in parse_program_logs(value.get("logs") or []):
            await self._registry.dispatch(event, slot, signature)
            dispatched += 1
        return dispatched

    async def stop(self) -> None:
        self._running = False
        if self._ws:
            await self._ws.close()
            self._ws = None
        self._state = ConnectionState.DISCONNECTED
