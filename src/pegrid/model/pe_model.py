"""
Cycle-accurate reference model of the PE and the PE grid.

The model mirrors the RTL one clock edge at a time. ``step()`` takes the
input port values driven during a cycle, computes every next-state value
from the current state, then commits them together, so no value written on
an edge is visible to another update on the same edge.

``outputs()`` returns the output port values as an Amaranth testbench would
read them with ``ctx.get``: signed ports as signed ints, flags as 0/1. All
PE outputs are register-derived, so they do not depend on the inputs of the
current cycle.

Example:
    >>> pe = PEModel(PEConfig())
    >>> pe.step(load_weight=1, weight_in=4)
    >>> pe.step(upstream_valid=1, activation_in=3, enable=1)
    >>> for _ in range(2):
    ...     pe.step(enable=1)
    >>> pe.outputs()["mac_result"]
    12
"""

from dataclasses import dataclass, field

import numpy as np

from ..arith import SIGMOID_LUT, relu, saturate, sigmoid_index, signed_range, wrap
from ..config import ActivationFunc, DataflowMode, PEConfig, PEState

PE_INPUTS = (
    "enable",
    "act_func_sel",
    "load_weight",
    "clear_acc",
    "forward_output",
    "dataflow_mode",
    "activation_in",
    "weight_in",
    "upstream_valid",
    "downstream_ready",
)
"""Input port names accepted by PEModel.step()."""


@dataclass
class PEModel:
    """
    Behavioural model of one PE.

    Attributes:
        config: Hardware configuration
        in_slots / out_slots: Input and output queue storage
        weight_slots: Weight store storage
        state / prev_state: Pipeline controller state (PEState values)
        cycle: Number of clock edges applied since reset
    """

    config: PEConfig

    # Buffers - initialized after __init__
    in_slots: np.ndarray = field(init=False)
    out_slots: np.ndarray = field(init=False)
    weight_slots: np.ndarray = field(init=False)

    def __post_init__(self) -> None:
        """Allocate buffers and put every register in its reset state."""
        self.in_slots = np.zeros(self.config.fifo_depth, dtype=np.int64)
        self.out_slots = np.zeros(self.config.fifo_depth, dtype=np.int64)
        self.weight_slots = np.zeros(self.config.weight_buffer_depth, dtype=np.int64)
        self.reset()

    def reset(self) -> None:
        """Synchronous reset: IDLE, empty queues, all registers zero."""
        self.in_slots.fill(0)
        self.out_slots.fill(0)
        self.weight_slots.fill(0)

        self.in_head = self.in_tail = self.in_count = 0
        self.out_head = self.out_tail = self.out_count = 0
        self.wr_ptr = self.rd_ptr = self.loaded = 0

        self.state = PEState.IDLE.value
        self.prev_state = PEState.IDLE.value
        self.cur_activation = 0
        self.cur_weight = 0
        self.accumulator = 0
        self.mac_result = 0
        self.sigmoid_index = 0
        self.activation_result = 0
        self.pending_output = 0

        self.activation_out = 0
        self.activation_out_valid = 0
        self.result_out = 0
        self.cycle = 0

    # =========================================================================
    # Combinational views
    # =========================================================================

    @property
    def upstream_ready(self) -> int:
        return int(self.in_count != self.config.fifo_depth)

    @property
    def downstream_valid(self) -> int:
        return int(self.out_count != 0)

    def selected_weight(self, dataflow_mode: int, weight_in: int) -> int:
        """Weight the next compute cycle would latch."""
        if dataflow_mode == DataflowMode.OUTPUT_STATIONARY.value:
            return int(self.weight_slots[self.rd_ptr])
        if dataflow_mode == DataflowMode.INPUT_STATIONARY.value:
            return weight_in
        return int(self.weight_slots[0])

    def activate(self, act_func_sel: int) -> int:
        """Activation unit output for the current mac_result."""
        bits = self.config.data_bits
        if act_func_sel == ActivationFunc.RELU.value:
            return relu(self.mac_result, bits)
        if act_func_sel == ActivationFunc.SIGMOID.value:
            return wrap(SIGMOID_LUT[self.sigmoid_index], bits)
        # LINEAR and the reserved TANH selector
        return saturate(self.mac_result, bits)

    def outputs(self) -> dict[str, int]:
        """Output port values for the current cycle."""
        return {
            "upstream_ready": self.upstream_ready,
            "downstream_valid": self.downstream_valid,
            "activation_out": self.activation_out,
            "activation_out_valid": self.activation_out_valid,
            "result_out": self.result_out,
            "state": self.state,
            "prev_state": self.prev_state,
            "mac_result": self.mac_result,
            "activation_result": self.activation_result,
            "in_count": self.in_count,
            "out_count": self.out_count,
        }

    # =========================================================================
    # Clock edge
    # =========================================================================

    def _check_inputs(self, ports: dict[str, int]) -> dict[str, int]:
        unknown = set(ports) - set(PE_INPUTS)
        if unknown:
            raise ValueError(f"unknown PE input port(s): {', '.join(sorted(unknown))}")

        values = dict.fromkeys(PE_INPUTS, 0)
        values.update(ports)

        cfg = self.config
        widths = {
            "act_func_sel": 2,
            "dataflow_mode": 2,
        }
        for name, value in values.items():
            if name == "activation_in":
                lo, hi = signed_range(cfg.data_bits)
            elif name == "weight_in":
                lo, hi = signed_range(cfg.weight_bits)
            else:
                lo, hi = 0, (1 << widths.get(name, 1)) - 1
            if not lo <= value <= hi:
                raise ValueError(f"{name}={value} out of range [{lo}, {hi}]")
        return values

    def step(self, **ports: int) -> None:
        """
        Apply one rising clock edge.

        Args:
            **ports: Input port values held during this cycle (see PE_INPUTS);
                omitted ports are driven low.

        Raises:
            ValueError: Unknown port name or value outside the port's range.
        """
        p = self._check_inputs(ports)
        cfg = self.config
        depth = cfg.fifo_depth

        IDLE = PEState.IDLE.value
        COMPUTE = PEState.COMPUTE.value
        ACTIVATE = PEState.ACTIVATE.value
        OUTPUT = PEState.OUTPUT.value

        # ---- Sample current state (everything below reads these) ----
        in_full = self.in_count == depth
        in_empty = self.in_count == 0
        out_full = self.out_count == depth
        out_empty = self.out_count == 0

        start = bool(p["enable"]) and not in_empty and self.state in (IDLE, OUTPUT)
        in_head_data = int(self.in_slots[self.in_head])
        out_head_data = int(self.out_slots[self.out_head])
        selected = self.selected_weight(p["dataflow_mode"], p["weight_in"])

        product = self.cur_activation * self.cur_weight
        if p["clear_acc"]:
            acc_next = 0
        else:
            acc_next = wrap(self.accumulator + product, cfg.acc_bits)
        act_value = self.activate(p["act_func_sel"])

        in_push = bool(p["upstream_valid"]) and not in_full
        in_pop = start
        out_push = self.state == OUTPUT and self.prev_state == ACTIVATE and not out_full
        out_pop = bool(p["downstream_ready"]) and not out_empty

        cur_activation = self.cur_activation
        state = self.state

        # ---- Input queue ----
        if in_push:
            self.in_slots[self.in_tail] = p["activation_in"]
            self.in_tail = (self.in_tail + 1) % depth
        if in_pop:
            self.in_head = (self.in_head + 1) % depth
        self.in_count += int(in_push) - int(in_pop)

        # ---- Weight store ----
        loaded = self.loaded
        if p["load_weight"]:
            self.weight_slots[self.wr_ptr] = p["weight_in"]
            self.wr_ptr = (self.wr_ptr + 1) % cfg.weight_buffer_depth
            if loaded != cfg.weight_buffer_depth:
                self.loaded = loaded + 1
        if start and p["dataflow_mode"] == DataflowMode.OUTPUT_STATIONARY.value:
            self.rd_ptr = 0 if self.rd_ptr + 1 >= loaded else self.rd_ptr + 1

        if start:
            self.cur_activation = in_head_data
            self.cur_weight = selected

        # ---- Output queue ----
        if out_push:
            self.out_slots[self.out_tail] = self.pending_output
            self.out_tail = (self.out_tail + 1) % depth
        if out_pop:
            self.out_head = (self.out_head + 1) % depth
            self.result_out = out_head_data
        self.out_count += int(out_push) - int(out_pop)

        # ---- Pipeline controller ----
        self.prev_state = state
        self.activation_out_valid = 0

        if state == IDLE:
            if start:
                self.state = COMPUTE
        elif state == COMPUTE:
            self.accumulator = acc_next
            self.mac_result = acc_next
            if p["act_func_sel"] == ActivationFunc.SIGMOID.value:
                self.sigmoid_index = sigmoid_index(acc_next, cfg.frac_bits)
            self.state = ACTIVATE
        elif state == ACTIVATE:
            self.activation_result = act_value
            if not out_full:
                self.pending_output = act_value
                self.state = OUTPUT
        else:
            if p["forward_output"]:
                self.activation_out = cur_activation
                self.activation_out_valid = 1
            self.state = COMPUTE if start else IDLE

        if p["clear_acc"]:
            self.accumulator = 0
            self.mac_result = 0

        self.cycle += 1


GRID_CONTROLS = (
    "enable",
    "act_func_sel",
    "load_weight",
    "clear_acc",
    "forward_output",
    "dataflow_mode",
)
"""Grid control inputs broadcast to every PE."""


class GridModel:
    """
    Behavioural model of PEGrid.

    Args:
        config: PEConfig with grid dimensions

    The grid inputs are the PEGrid port names: ``act_in_row{r}``,
    ``weight_{r}_{c}``, ``in_valid``, ``out_ready`` and the broadcast
    controls.
    """

    def __init__(self, config: PEConfig):
        self.config = config
        self.pes = [
            [PEModel(config) for _ in range(config.grid_cols)] for _ in range(config.grid_rows)
        ]

    def reset(self) -> None:
        for row in self.pes:
            for pe in row:
                pe.reset()

    def outputs(self) -> dict[str, int]:
        """Grid boundary output port values."""
        last = self.config.grid_cols - 1
        result = {
            "in_ready": int(all(row[0].upstream_ready for row in self.pes)),
            "out_valid": int(all(row[last].downstream_valid for row in self.pes)),
        }
        for r, row in enumerate(self.pes):
            result[f"result_col{r}"] = row[last].result_out
        return result

    def step(self, **ports: int) -> None:
        """Apply one clock edge to every PE with the grid's wiring."""
        cfg = self.config
        controls = {name: ports.pop(name, 0) for name in GRID_CONTROLS}
        in_valid = ports.pop("in_valid", 0)
        out_ready = ports.pop("out_ready", 0)
        act_in = {r: ports.pop(f"act_in_row{r}", 0) for r in range(cfg.grid_rows)}
        weights = {
            (r, c): ports.pop(f"weight_{r}_{c}", 0)
            for r in range(cfg.grid_rows)
            for c in range(cfg.grid_cols)
        }
        if ports:
            raise ValueError(f"unknown grid input port(s): {', '.join(sorted(ports))}")

        # Chained inputs come from the registered outputs of the previous
        # column, so gather them all before any PE advances.
        pe_inputs = {}
        for r, row in enumerate(self.pes):
            for c in range(cfg.grid_cols):
                if c == 0:
                    activation_in, upstream_valid = act_in[r], in_valid
                else:
                    activation_in = row[c - 1].activation_out
                    upstream_valid = row[c - 1].activation_out_valid
                pe_inputs[r, c] = dict(
                    controls,
                    activation_in=activation_in,
                    upstream_valid=upstream_valid,
                    weight_in=weights[r, c],
                    downstream_ready=out_ready,
                )

        for (r, c), inputs in pe_inputs.items():
            self.pes[r][c].step(**inputs)
