"""Pump.fun program events — typed variants, log decoding, listener registry.

The program emits Anchor events as `Program data: <base64>` log lines whose
payload is an 8-byte event discriminator followed by borsh fields.
"""

from __future__ import annotations

import base64
import binascii
import inspect
import itertools
import struct
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import Enum
from typing import Union

from loguru import logger
from solders.pubkey import Pubkey  # type: ignore[import-untyped]

from pumpbundler.protocol.constants import (
    COMPLETE_EVENT_DISCRIMINATOR,
    CREATE_EVENT_DISCRIMINATOR,
    SET_PARAMS_EVENT_DISCRIMINATOR,
    TRADE_EVENT_DISCRIMINATOR,
)

PROGRAM_DATA_PREFIX = "Program data: "


class EventKind(Enum):
    CREATE = "createEvent"
    TRADE = "tradeEvent"
    COMPLETE = "completeEvent"
    SET_PARAMS = "setParamsEvent"


@dataclass(frozen=True)
class CreateEvent:
    name: str
    symbol: str
    uri: str
    mint: Pubkey
    bonding_curve: Pubkey
    user: Pubkey

    kind = EventKind.CREATE


@dataclass(frozen=True)
class TradeEvent:
    mint: Pubkey
    sol_amount: int
    token_amount: int
    is_buy: bool
    user: Pubkey
    timestamp: int
    virtual_sol_reserves: int
    virtual_token_reserves: int
    real_sol_reserves: int
    real_token_reserves: int

    kind = EventKind.TRADE


@dataclass(frozen=True)
class CompleteEvent:
    user: Pubkey
    mint: Pubkey
    bonding_curve: Pubkey
    timestamp: int

    kind = EventKind.COMPLETE


@dataclass(frozen=True)
class SetParamsEvent:
    fee_recipient: Pubkey
    initial_virtual_token_reserves: int
    initial_virtual_sol_reserves: int
    initial_real_token_reserves: int
    token_total_supply: int
    fee_basis_points: int

    kind = EventKind.SET_PARAMS


PumpFunEvent = Union[CreateEvent, TradeEvent, CompleteEvent, SetParamsEvent]
EventCallback = Callable[[PumpFunEvent, int, str], Union[Awaitable[None], None]]


class _Reader:
    """Sequential borsh reader over an event payload."""

    def __init__(self, data: bytes, offset: int = 0) -> None:
        self._data = data
        self._offset = offset

    def _unpack(self, fmt: str) -> int:
        value = struct.unpack_from(fmt, self._data, self._offset)[0]
        self._offset += struct.calcsize(fmt)
        return value

    def u64(self) -> int:
        return self._unpack("<Q")

    def i64(self) -> int:
        return self._unpack("<q")

    def bool_(self) -> bool:
        return bool(self._unpack("<B"))

    def pubkey(self) -> Pubkey:
        end = self._offset + 32
        if end > len(self._data):
            raise struct.error("pubkey out of range")
        key = Pubkey.from_bytes(self._data[self._offset : end])
        self._offset = end
        return key

    def string(self) -> str:
        length = self._unpack("<I")
        end = self._offset + length
        if end > len(self._data):
            raise struct.error("string out of range")
        value = self._data[self._offset : end].decode("utf-8", errors="replace")
        self._offset = end
        return value


def _decode_create(r: _Reader) -> CreateEvent:
    return CreateEvent(
        name=r.string(),
        symbol=r.string(),
        uri=r.string(),
        mint=r.pubkey(),
        bonding_curve=r.pubkey(),
        user=r.pubkey(),
    )


def _decode_trade(r: _Reader) -> TradeEvent:
    return TradeEvent(
        mint=r.pubkey(),
        sol_amount=r.u64(),
        token_amount=r.u64(),
        is_buy=r.bool_(),
        user=r.pubkey(),
        timestamp=r.i64(),
        virtual_sol_reserves=r.u64(),
        virtual_token_reserves=r.u64(),
        real_sol_reserves=r.u64(),
        real_token_reserves=r.u64(),
    )


def _decode_complete(r: _Reader) -> CompleteEvent:
    return CompleteEvent(
        user=r.pubkey(),
        mint=r.pubkey(),
        bonding_curve=r.pubkey(),
        timestamp=r.i64(),
    )


def _decode_set_params(r: _Reader) -> SetParamsEvent:
    return SetParamsEvent(
        fee_recipient=r.pubkey(),
        initial_virtual_token_reserves=r.u64(),
        initial_virtual_sol_reserves=r.u64(),
        initial_real_token_reserves=r.u64(),
        token_total_supply=r.u64(),
        fee_basis_points=r.u64(),
    )


_DECODERS: dict[bytes, Callable[[_Reader], PumpFunEvent]] = {
    CREATE_EVENT_DISCRIMINATOR: _decode_create,
    TRADE_EVENT_DISCRIMINATOR: _decode_trade,
    COMPLETE_EVENT_DISCRIMINATOR: _decode_complete,
    SET_PARAMS_EVENT_DISCRIMINATOR: _decode_set_params,
}


def decode_event(data: bytes) -> PumpFunEvent | None:
    """Decode one event payload. Returns None for unknown or truncated data."""
    if len(data) < 8:
        return None
    decoder = _DECODERS.get(data[:8])
    if decoder is None:
        return None
    try:
        return decoder(_Reader(data, 8))
    except struct.error as e:
        logger.debug(f"[EVENTS] Truncated event payload: {e}")
        return None


def parse_program_logs(logs: list[str]) -> list[PumpFunEvent]:
    """Extract every decodable event from a transaction's log messages."""
    events: list[PumpFunEvent] = []
    for line in logs:
        if not line.startswith(PROGRAM_DATA_PREFIX):
            continue
        try:
            payload = base64.b64decode(line[len(PROGRAM_DATA_PREFIX) :], validate=True)
        except (binascii.Error, ValueError):
            continue
        event = decode_event(payload)
        if event is not None:
            events.append(event)
    return events


class EventRegistry:
    """Typed listener registry: EventKind -> {listener_id: callback}."""

    def __init__(self) -> None:
        self._listeners: dict[EventKind, dict[int, EventCallback]] = {
            kind: {} for kind in EventKind
        }
        self._kind_by_id: dict[int, EventKind] = {}
        self._ids = itertools.count(1)

    def subscribe(self, kind: EventKind, callback: EventCallback) -> int:
        listener_id = next(self._ids)
        self._listeners[kind][listener_id] = callback
        self._kind_by_id[listener_id] = kind
        return listener_id

    def unsubscribe(self, listener_id: int) -> bool:
        kind = self._kind_by_id.pop(listener_id, None)
        if kind is None:
            return False
        self._listeners[kind].pop(listener_id, None)
        return True

    def listener_count(self, kind: EventKind | None = None) -> int:
        if kind is None:
            return len(self._kind_by_id)
        return len(self._listeners[kind])

    async def dispatch(self, event: PumpFunEvent, slot: int, signature: str) -> int:
        """Deliver an event to its listeners. Returns how many were called.

        A failing listener is logged and does not stop delivery to others.
        """
        delivered = 0
        for listener_id, callback in list(self._listeners[event.kind].items()):
            try:
                result = callback(event, slot, signature)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"[EVENTS] Listener {listener_id} failed on {event.kind.value}: {e}")
        return delivered
