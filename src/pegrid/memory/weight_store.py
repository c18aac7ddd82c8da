"""
WeightStore - Circular weight buffer with dataflow-dependent selection.

Weights are written at the write pointer on every ``load`` pulse, whatever
the dataflow mode; the pointer wraps at the capacity and overwrites the
oldest entry. Reads never remove entries.

The ``selected`` output is the weight the next compute cycle will use:

    WEIGHT_STATIONARY (00)  slot 0
    OUTPUT_STATIONARY (01)  slot[rd_ptr], rotating over the loaded weights
    INPUT_STATIONARY  (10)  ``weight_in`` port, bypassing the store
    other                   slot 0

In output-stationary mode each ``advance`` pulse moves the read pointer to
the next loaded slot, wrapping to 0 after the last one. ``loaded`` counts
written slots and saturates at the capacity.
"""

from amaranth import Array, Module, Mux, Signal, signed
from amaranth.lib.wiring import Component, In, Out

from ..config import DataflowMode, PEConfig


class WeightStore(Component):
    """
    Weight buffer for one PE.

    Ports:
        load: Write ``load_data`` at the write pointer
        load_data: Weight to store
        weight_in: Raw weight port, selected in input-stationary mode
        dataflow_mode: 2-bit dataflow mode code
        advance: A compute cycle consumed ``selected``

        selected: Weight for the next compute cycle
        wr_ptr: Write pointer
        rd_ptr: Output-stationary read pointer
        loaded: Number of slots written so far (saturating)

    Parameters:
        config: PEConfig with weight_bits and weight_buffer_depth
    """

    def __init__(self, config: PEConfig):
        self.config = config
        depth = config.weight_buffer_depth
        ptr_bits = max(1, (depth - 1).bit_length())

        super().__init__(
            {
                "load": In(1),
                "load_data": In(signed(config.weight_bits)),
                "weight_in": In(signed(config.weight_bits)),
                "dataflow_mode": In(2),
                "advance": In(1),
                "selected": Out(signed(config.weight_bits)),
                "wr_ptr": Out(ptr_bits),
                "rd_ptr": Out(ptr_bits),
                "loaded": Out(depth.bit_length()),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config
        depth = cfg.weight_buffer_depth

        slots = Array(
            Signal(signed(cfg.weight_bits), name=f"weight_{i}") for i in range(depth)
        )

        # =================================================================
        # Load Path
        # =================================================================
        with m.If(self.load):
            m.d.sync += [
                slots[self.wr_ptr].eq(self.load_data),
                self.wr_ptr.eq(Mux(self.wr_ptr == depth - 1, 0, self.wr_ptr + 1)),
            ]
            with m.If(self.loaded != depth):
                m.d.sync += self.loaded.eq(self.loaded + 1)

        # =================================================================
        # Selection
        # =================================================================
        with m.Switch(self.dataflow_mode):
            with m.Case(DataflowMode.OUTPUT_STATIONARY.value):
                m.d.comb += self.selected.eq(slots[self.rd_ptr])
            with m.Case(DataflowMode.INPUT_STATIONARY.value):
                m.d.comb += self.selected.eq(self.weight_in)
            with m.Default():
                m.d.comb += self.selected.eq(slots[0])

        # Output-stationary rotation over the loaded slots
        is_output_stationary = self.dataflow_mode == DataflowMode.OUTPUT_STATIONARY.value
        with m.If(self.advance & is_output_stationary):
            m.d.sync += self.rd_ptr.eq(Mux(self.rd_ptr + 1 >= self.loaded, 0, self.rd_ptr + 1))

        return m
