from __future__ import annotations

from typing import Protocol

from docbridge.app.events.models import BridgeEvent


class BridgeEventEmitter(Protocol):
    """
    Receives one BridgeEvent per engine phase boundary.

    Every event of an operation carries that operation's id. A run that
    finishes ends with exactly one of operation_completed or
    operation_failed; a run cancelled by its caller simply stops. A call
    rejected while another operation is in flight produces a single
    operation_rejected event instead.

    The engine awaits ``emit`` inline between phases and logs any
    exception it raises, so a slow emitter delays the transfer and a
    broken one is ignored.
    """

    async def emit(self, event: BridgeEvent) -> None:
        ...


class NullEventEmitter:
    """
    Default emitter of an engine built without one. Drops every event.
    """

    async def emit(self, event: BridgeEvent) -> None:
        return
