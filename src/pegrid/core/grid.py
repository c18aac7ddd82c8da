"""
PEGrid - A rectangular arrangement of row-chained Processing Elements.

Activations flow left to right: each PE's forwarded activation (and its
forward strobe) feeds the next PE's input queue in the same row. Every row
drives one column result from its last PE. There is no vertical coupling
between rows, so each ``result_col`` derives from a single row.

Example 2x2 PEGrid:

    act_in_row0 --> [PE(0,0)] --fwd--> [PE(0,1)] --> result_col0
    act_in_row1 --> [PE(1,0)] --fwd--> [PE(1,1)] --> result_col1

    in_ready  = AND(PE(r,0).upstream_ready)
    out_valid = AND(PE(r,last).downstream_valid)

Control inputs and ``out_ready`` fan out unbuffered to every PE. Each cell
has its own weight input, ``weight_{r}_{c}``.
"""

from amaranth import Module, signed
from amaranth.lib.wiring import Component, In, Out

from ..config import PEConfig
from .pe import PE


class PEGrid(Component):
    """
    PEGrid - grid_rows x grid_cols PEs chained along rows.

    Ports:
        act_in_row0..N: Activation input for each row (first column)
        weight_R_C: Weight input of PE(R, C)
        enable, act_func_sel, load_weight, clear_acc, forward_output,
        dataflow_mode: Control signals (broadcast to all PEs)
        in_valid: Producer valid for every row
        in_ready: All first-column input queues have room
        out_ready: Consumer ready (broadcast to all PEs)
        out_valid: All last-column output queues hold data

        result_col0..N: result_out of the last PE of row N

    Parameters:
        config: PEConfig with grid dimensions and data widths
    """

    def __init__(self, config: PEConfig):
        self.config = config
        rows = config.grid_rows
        cols = config.grid_cols

        ports = {}

        # Row inputs
        for r in range(rows):
            ports[f"act_in_row{r}"] = In(signed(config.data_bits))

        # Per-cell weights
        for r in range(rows):
            for c in range(cols):
                ports[f"weight_{r}_{c}"] = In(signed(config.weight_bits))

        # Control inputs (broadcast to all PEs)
        ports["enable"] = In(1)
        ports["act_func_sel"] = In(2)
        ports["load_weight"] = In(1)
        ports["clear_acc"] = In(1)
        ports["forward_output"] = In(1)
        ports["dataflow_mode"] = In(2)

        # Boundary handshake
        ports["in_valid"] = In(1)
        ports["in_ready"] = Out(1)
        ports["out_ready"] = In(1)
        ports["out_valid"] = Out(1)

        # Column results (one per row, from the last column)
        for r in range(rows):
            ports[f"result_col{r}"] = Out(signed(config.data_bits))

        super().__init__(ports)

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config
        rows = cfg.grid_rows
        cols = cfg.grid_cols

        # Create PE grid
        pes = [[PE(cfg) for _ in range(cols)] for _ in range(rows)]

        for r in range(rows):
            for c in range(cols):
                m.submodules[f"pe_{r}_{c}"] = pes[r][c]

        # =================================================================
        # Horizontal Wiring - activations forward left to right
        # =================================================================
        for r in range(rows):
            m.d.comb += [
                pes[r][0].activation_in.eq(getattr(self, f"act_in_row{r}")),
                pes[r][0].upstream_valid.eq(self.in_valid),
            ]

            for c in range(1, cols):
                m.d.comb += [
                    pes[r][c].activation_in.eq(pes[r][c - 1].activation_out),
                    pes[r][c].upstream_valid.eq(pes[r][c - 1].activation_out_valid),
                ]

            m.d.comb += getattr(self, f"result_col{r}").eq(pes[r][cols - 1].result_out)

        # =================================================================
        # Control Signal Broadcast - same signal to all PEs
        # =================================================================
        for r in range(rows):
            for c in range(cols):
                m.d.comb += [
                    pes[r][c].weight_in.eq(getattr(self, f"weight_{r}_{c}")),
                    pes[r][c].enable.eq(self.enable),
                    pes[r][c].act_func_sel.eq(self.act_func_sel),
                    pes[r][c].load_weight.eq(self.load_weight),
                    pes[r][c].clear_acc.eq(self.clear_acc),
                    pes[r][c].forward_output.eq(self.forward_output),
                    pes[r][c].dataflow_mode.eq(self.dataflow_mode),
                    pes[r][c].downstream_ready.eq(self.out_ready),
                ]

        # =================================================================
        # Boundary Handshake - row-wise AND
        # =================================================================
        in_ready = pes[0][0].upstream_ready
        out_valid = pes[0][cols - 1].downstream_valid
        for r in range(1, rows):
            in_ready = in_ready & pes[r][0].upstream_ready
            out_valid = out_valid & pes[r][cols - 1].downstream_valid

        m.d.comb += [
            self.in_ready.eq(in_ready),
            self.out_valid.eq(out_valid),
        ]

        return m
