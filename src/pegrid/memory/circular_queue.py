"""
CircularQueue - Fixed-capacity FIFO built from a register array.

The same queue is used for the PE's input-activation queue and its
output-result queue. Occupancy is tracked with a count plus head (read) and
tail (write) pointers that wrap modulo the capacity:

          tail (write)                   head (read)
              │                              │
        ┌─────▼────┬──────────┬──────────┬───▼──────┐
 push ─►│ slot N-1 │   ...    │  slot 1  │  slot 0  ├─► head_data
        └──────────┴──────────┴──────────┴──────────┘

    full  = (count == depth)
    empty = (count == 0)

A push while full and a pop while empty are ignored. A push and a pop on the
same cycle move both pointers and leave the count unchanged. The head entry
is readable combinationally through ``head_data``; the pop only advances the
head pointer on the clock edge.
"""

from amaranth import Array, Module, Mux, Signal, signed
from amaranth.lib.wiring import Component, In, Out


class CircularQueue(Component):
    """
    Register-array circular FIFO with full/empty flags.

    Ports:
        push: Write ``push_data`` at the tail (ignored while full)
        push_data: Value to enqueue
        pop: Advance the head (ignored while empty)
        head_data: Entry at the head pointer

        full: count == depth
        empty: count == 0
        count: Number of occupied slots
        head: Read pointer
        tail: Write pointer

    Parameters:
        depth: Number of slots
        data_width: Width of each (signed) entry in bits
        name_prefix: Prefix for slot signal names
    """

    def __init__(self, depth: int, data_width: int, name_prefix: str = "q"):
        assert depth > 0, "depth must be positive"
        self.depth = depth
        self.data_width = data_width
        self.name_prefix = name_prefix

        ptr_bits = max(1, (depth - 1).bit_length())
        count_bits = depth.bit_length()

        super().__init__(
            {
                # Write side
                "push": In(1),
                "push_data": In(signed(data_width)),
                # Read side
                "pop": In(1),
                "head_data": Out(signed(data_width)),
                # Occupancy
                "full": Out(1),
                "empty": Out(1),
                "count": Out(count_bits),
                "head": Out(ptr_bits),
                "tail": Out(ptr_bits),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        depth = self.depth

        slots = Array(
            Signal(signed(self.data_width), name=f"{self.name_prefix}_slot_{i}")
            for i in range(depth)
        )

        do_push = Signal()
        do_pop = Signal()

        m.d.comb += [
            self.full.eq(self.count == depth),
            self.empty.eq(self.count == 0),
            self.head_data.eq(slots[self.head]),
            do_push.eq(self.push & ~self.full),
            do_pop.eq(self.pop & ~self.empty),
        ]

        with m.If(do_push):
            m.d.sync += [
                slots[self.tail].eq(self.push_data),
                self.tail.eq(Mux(self.tail == depth - 1, 0, self.tail + 1)),
            ]

        with m.If(do_pop):
            m.d.sync += self.head.eq(Mux(self.head == depth - 1, 0, self.head + 1))

        with m.If(do_push & ~do_pop):
            m.d.sync += self.count.eq(self.count + 1)
        with m.Elif(do_pop & ~do_push):
            m.d.sync += self.count.eq(self.count - 1)

        return m
