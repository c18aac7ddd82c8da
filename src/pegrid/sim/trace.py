"""
PE cycle tracing for Amaranth simulations.

PETracer is the observability hook of the PE: instead of printing from the
design, a testbench advances the clock through the tracer, which samples the
PE's ports around each edge and emits structured events:

    accept      upstream handshake completed (value = activation_in)
    consume     downstream handshake completed (value = new result_out)
    transition  pipeline state changed (detail = "IDLE->COMPUTE", ...)
    stall       ACTIVATE held because the output queue is full
    forward     activation forwarded (value = activation_out)

Subscribers are plain callables receiving each CycleEvent as it is emitted.
The collected events can be written as CSV for spreadsheet analysis or as
Chrome Trace JSON for chrome://tracing or Perfetto, where each pipeline
state appears as a duration slice and handshakes as instant events.

Usage:
    tracer = PETracer(pe, name="pe0")
    tracer.subscribe(print)

    async def testbench(ctx):
        ctx.set(pe.enable, 1)
        await tracer.tick(ctx)

    ...
    tracer.export("trace.json", fmt="chrome")
"""

import csv
import json
from collections.abc import Callable
from dataclasses import asdict, dataclass

from ..config import PEState


@dataclass
class CycleEvent:
    """One traced occurrence on a PE clock edge."""

    cycle: int
    kind: str
    source: str
    value: int | None = None
    detail: str = ""


class PETracer:
    """
    Samples a PE around each clock edge and records CycleEvents.

    Args:
        pe: PE component under simulation
        name: Label used as the event source (and Chrome Trace thread name)
    """

    FORMATS = ("csv", "chrome")

    def __init__(self, pe, name: str = "pe"):
        self.pe = pe
        self.name = name
        self.cycle = 0
        self.events: list[CycleEvent] = []
        self.subscribers: list[Callable[[CycleEvent], None]] = []
        # (state name, begin, end) slices for Chrome Trace output
        self.state_slices: list[tuple[str, int, int]] = []
        self._slice_start = 0
        self._slice_state = PEState.IDLE.name

    def subscribe(self, callback: Callable[[CycleEvent], None]) -> None:
        """Register a callable invoked for every emitted event."""
        self.subscribers.append(callback)

    def emit(self, kind: str, value: int | None = None, detail: str = "") -> CycleEvent:
        event = CycleEvent(self.cycle, kind, self.name, value, detail)
        self.events.append(event)
        for callback in self.subscribers:
            callback(event)
        return event

    def events_of(self, kind: str) -> list[CycleEvent]:
        """Return recorded events of one kind, in cycle order."""
        return [e for e in self.events if e.kind == kind]

    async def tick(self, ctx) -> None:
        """
        Advance the simulation by one clock edge and record what happened.

        Args:
            ctx: Amaranth testbench context
        """
        pe = self.pe

        # Handshakes are decided by the values held before the edge
        accepted = ctx.get(pe.upstream_valid) and ctx.get(pe.upstream_ready)
        activation_in = ctx.get(pe.activation_in)
        consumed = ctx.get(pe.downstream_ready) and ctx.get(pe.downstream_valid)
        state_before = ctx.get(pe.state)

        await ctx.tick()

        state_after = ctx.get(pe.state)

        if accepted:
            self.emit("accept", activation_in)
        if consumed:
            self.emit("consume", ctx.get(pe.result_out))
        if state_after != state_before:
            before = PEState(state_before).name
            after = PEState(state_after).name
            self.emit("transition", detail=f"{before}->{after}")
            self.state_slices.append((before, self._slice_start, self.cycle + 1))
            self._slice_start = self.cycle + 1
            self._slice_state = after
        elif state_after == PEState.ACTIVATE.value:
            self.emit("stall", ctx.get(pe.out_count), detail="output queue full")
        if ctx.get(pe.activation_out_valid):
            self.emit("forward", ctx.get(pe.activation_out))

        self.cycle += 1

    # =========================================================================
    # Export
    # =========================================================================

    def export(self, filename: str, fmt: str = "csv") -> None:
        """
        Write recorded events to a file.

        Args:
            filename: Output file path
            fmt: "csv" or "chrome" (Chrome Trace JSON)

        Raises:
            ValueError: Unknown format.
        """
        if fmt == "csv":
            self._write_csv(filename)
        elif fmt == "chrome":
            self._write_chrome(filename)
        else:
            raise ValueError(f"unknown trace format {fmt!r}, expected one of {self.FORMATS}")

    def _write_csv(self, filename: str) -> None:
        with open(filename, "w", newline="") as f:
            writer = csv.DictWriter(f, fieldnames=["cycle", "kind", "source", "value", "detail"])
            writer.writeheader()
            for event in self.events:
                writer.writerow(asdict(event))

    def chrome_trace_events(self) -> list[dict]:
        """Build Chrome Trace events (one cycle = one microsecond)."""
        trace = []
        slices = self.state_slices + [(self._slice_state, self._slice_start, self.cycle)]
        for state, begin, end in slices:
            if end <= begin:
                continue
            trace.append(
                {
                    "name": state,
                    "cat": "state",
                    "ph": "X",
                    "ts": begin,
                    "dur": end - begin,
                    "pid": 0,
                    "tid": self.name,
                }
            )
        for event in self.events:
            if event.kind in ("transition", "stall"):
                continue
            trace.append(
                {
                    "name": event.kind,
                    "cat": "handshake",
                    "ph": "i",
                    "s": "t",
                    "ts": event.cycle,
                    "pid": 0,
                    "tid": self.name,
                    "args": {"value": event.value},
                }
            )
        return trace

    def _write_chrome(self, filename: str) -> None:
        with open(filename, "w") as f:
            json.dump({"traceEvents": self.chrome_trace_events(), "displayTimeUnit": "ns"}, f)
