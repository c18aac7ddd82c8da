"""
Processing Element (PE) - Buffered, pipelined MAC unit with activation.

Each PE streams activations through a four-stage control pipeline:

    IDLE ──(enable & input queued)──► COMPUTE ──► ACTIVATE ──(output room)──► OUTPUT
     ▲                                   ▲            │  ▲                      │
     │                                   │            └──┘ stall while full     │
     │                                   └──────(enable & input queued)─────────┤
     └──────────────────────────────────────────────────────────────────────────┘

Data path:

    activation_in ─► [input queue] ─► cur_activation ─┐
                                                      ├─► MAC ─► accumulator / mac_result
    weight_in ─► [weight store] ──► cur_weight ───────┘                 │
                                                                        ▼
    result_out ◄─ [output queue] ◄─ pending_output ◄─ activation unit ◄─┘

Flow control is ready/valid on both sides: ``upstream_ready`` is the input
queue's not-full flag and ``downstream_valid`` the output queue's not-empty
flag. A transfer happens on a clock edge where both halves of a handshake
are high.

Timing (one item, output queue not full):
    edge 0: IDLE -> COMPUTE, input queue head -> cur_activation
    edge 1: COMPUTE -> ACTIVATE, accumulator/mac_result updated
    edge 2: ACTIVATE -> OUTPUT, activated value -> pending_output
    edge 3: OUTPUT, pending_output enqueued; cur_activation forwarded
"""

from amaranth import Module, Mux, Signal, signed
from amaranth.lib.wiring import Component, In, Out

from ..arith import sigmoid_index_expr
from ..config import ActivationFunc, PEConfig, PEState
from ..memory import CircularQueue, WeightStore
from .activation import ActivationUnit


class PE(Component):
    """
    Processing Element - buffers, multiplies, accumulates and activates.

    Ports:
        enable: Allows the FSM to leave IDLE
        act_func_sel: Activation select (0=linear, 1=ReLU, 2=sigmoid, 3=tanh)
        load_weight: Write weight_in into the weight store
        clear_acc: Zero the accumulator and mac_result
        forward_output: Forward cur_activation during OUTPUT
        dataflow_mode: 0=weight-, 1=output-, 2=input-stationary
        activation_in: Activation offered by the upstream producer
        weight_in: Weight to load, or used directly (input-stationary)
        upstream_valid: Producer has data on activation_in
        upstream_ready: Input queue not full
        downstream_ready: Consumer accepts result_out
        downstream_valid: Output queue not empty

        activation_out: Forwarded activation (to the next PE in a row)
        activation_out_valid: Strobe, high for the cycle after a forward
        result_out: Last value dequeued from the output queue

        state, prev_state: Pipeline controller state (see PEState)
        mac_result: Latched accumulation result
        activation_result: Value produced by the activation stage
        in_count, out_count: Queue occupancy

    Parameters:
        config: PEConfig with bit widths and buffer depths
    """

    def __init__(self, config: PEConfig):
        self.config = config

        data_width = config.data_bits
        weight_width = config.weight_bits
        count_bits = config.fifo_depth.bit_length()

        super().__init__(
            {
                # Control inputs
                "enable": In(1),
                "act_func_sel": In(2),
                "load_weight": In(1),
                "clear_acc": In(1),
                "forward_output": In(1),
                "dataflow_mode": In(2),
                # Data inputs
                "activation_in": In(signed(data_width)),
                "weight_in": In(signed(weight_width)),
                # Upstream handshake
                "upstream_valid": In(1),
                "upstream_ready": Out(1),
                # Downstream handshake
                "downstream_ready": In(1),
                "downstream_valid": Out(1),
                # Data outputs
                "activation_out": Out(signed(data_width)),
                "activation_out_valid": Out(1),
                "result_out": Out(signed(data_width)),
                # Observation
                "state": Out(2),
                "prev_state": Out(2),
                "mac_result": Out(signed(config.acc_bits)),
                "activation_result": Out(signed(data_width)),
                "in_count": Out(count_bits),
                "out_count": Out(count_bits),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        cfg = self.config

        IDLE = PEState.IDLE.value
        COMPUTE = PEState.COMPUTE.value
        ACTIVATE = PEState.ACTIVATE.value
        OUTPUT = PEState.OUTPUT.value

        m.submodules.input_queue = in_q = CircularQueue(cfg.fifo_depth, cfg.data_bits, "in_q")
        m.submodules.output_queue = out_q = CircularQueue(cfg.fifo_depth, cfg.data_bits, "out_q")
        m.submodules.weights = weights = WeightStore(cfg)
        m.submodules.activation = act = ActivationUnit(cfg)

        # Pipeline stage registers
        cur_activation = Signal(signed(cfg.data_bits), name="cur_activation")
        cur_weight = Signal(signed(cfg.weight_bits), name="cur_weight")
        accumulator = Signal(signed(cfg.acc_bits), name="accumulator")
        sigmoid_index = Signal(4, name="sigmoid_index")
        pending_output = Signal(signed(cfg.data_bits), name="pending_output")

        # =================================================================
        # Handshake and Queue Wiring
        # =================================================================
        m.d.comb += [
            self.upstream_ready.eq(~in_q.full),
            self.downstream_valid.eq(~out_q.empty),
            self.in_count.eq(in_q.count),
            self.out_count.eq(out_q.count),
            in_q.push.eq(self.upstream_valid),
            in_q.push_data.eq(self.activation_in),
        ]

        m.d.comb += [
            weights.load.eq(self.load_weight),
            weights.load_data.eq(self.weight_in),
            weights.weight_in.eq(self.weight_in),
            weights.dataflow_mode.eq(self.dataflow_mode),
        ]

        # =================================================================
        # Dequeue Into the Pipeline (IDLE->COMPUTE and OUTPUT->COMPUTE)
        # =================================================================
        start = Signal()
        can_start = (self.state == IDLE) | (self.state == OUTPUT)
        m.d.comb += [
            start.eq(self.enable & ~in_q.empty & can_start),
            in_q.pop.eq(start),
            weights.advance.eq(start),
        ]

        with m.If(start):
            m.d.sync += [
                cur_activation.eq(in_q.head_data),
                cur_weight.eq(weights.selected),
            ]

        # =================================================================
        # Multiply-Accumulate
        # =================================================================
        product = Signal(signed(cfg.product_bits), name="product")
        acc_next = Signal(signed(cfg.acc_bits), name="acc_next")
        m.d.comb += [
            product.eq(cur_activation * cur_weight),
            acc_next.eq(Mux(self.clear_acc, 0, accumulator + product)),
        ]

        # =================================================================
        # Activation and Output Queue
        # =================================================================
        m.d.comb += [
            act.func_sel.eq(self.act_func_sel),
            act.mac_result.eq(self.mac_result),
            act.sigmoid_index.eq(sigmoid_index),
        ]

        # pending_output is written on the ACTIVATE->OUTPUT edge, so it is
        # only stable for the OUTPUT cycle that directly follows ACTIVATE.
        m.d.comb += [
            out_q.push.eq((self.state == OUTPUT) & (self.prev_state == ACTIVATE)),
            out_q.push_data.eq(pending_output),
            out_q.pop.eq(self.downstream_ready),
        ]

        # Consumer side runs regardless of the FSM state
        with m.If(self.downstream_ready & ~out_q.empty):
            m.d.sync += self.result_out.eq(out_q.head_data)

        # =================================================================
        # Pipeline Controller
        # =================================================================
        m.d.sync += [
            self.prev_state.eq(self.state),
            self.activation_out_valid.eq(0),
        ]

        with m.Switch(self.state):
            with m.Case(IDLE):
                with m.If(start):
                    m.d.sync += self.state.eq(COMPUTE)

            with m.Case(COMPUTE):
                m.d.sync += [
                    accumulator.eq(acc_next),
                    self.mac_result.eq(acc_next),
                    self.state.eq(ACTIVATE),
                ]
                with m.If(self.act_func_sel == ActivationFunc.SIGMOID.value):
                    m.d.sync += sigmoid_index.eq(sigmoid_index_expr(acc_next, cfg.frac_bits))

            with m.Case(ACTIVATE):
                m.d.sync += self.activation_result.eq(act.result)
                with m.If(~out_q.full):
                    m.d.sync += [
                        pending_output.eq(act.result),
                        self.state.eq(OUTPUT),
                    ]

            with m.Case(OUTPUT):
                with m.If(self.forward_output):
                    m.d.sync += [
                        self.activation_out.eq(cur_activation),
                        self.activation_out_valid.eq(1),
                    ]
                m.d.sync += self.state.eq(Mux(start, COMPUTE, IDLE))

        # Clear has priority over the COMPUTE update
        with m.If(self.clear_acc):
            m.d.sync += [
                accumulator.eq(0),
                self.mac_result.eq(0),
            ]

        return m
