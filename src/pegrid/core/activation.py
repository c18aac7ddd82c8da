"""
ActivationUnit - Combinational activation function selector.

Applies the function chosen by ``func_sel`` to the latched MAC result:

    LINEAR  (0)  saturate(mac_result)
    RELU    (1)  0 if mac_result < 0 else saturate(mac_result)
    SIGMOID (2)  SIGMOID_LUT[sigmoid_index]
    TANH    (3)  reserved, same as LINEAR

The sigmoid index is computed by the PE during COMPUTE, one cycle ahead, so
no arithmetic is needed here for the sigmoid path.
"""

from amaranth import Module, signed
from amaranth.lib.wiring import Component, In, Out

from ..arith import relu_expr, saturate_expr, sigmoid_table
from ..config import ActivationFunc, PEConfig


class ActivationUnit(Component):
    """
    Activation function stage of the PE pipeline.

    Ports:
        func_sel: Activation function select (see ActivationFunc)
        mac_result: Accumulated value from the MAC stage
        sigmoid_index: Table index latched during COMPUTE
        result: Activated value, narrowed to data_bits

    Parameters:
        config: PEConfig with data_bits and acc_bits
    """

    def __init__(self, config: PEConfig):
        self.config = config

        super().__init__(
            {
                "func_sel": In(2),
                "mac_result": In(signed(config.acc_bits)),
                "sigmoid_index": In(4),
                "result": Out(signed(config.data_bits)),
            }
        )

    def elaborate(self, _platform):
        m = Module()
        bits = self.config.data_bits

        lut = sigmoid_table(bits)

        with m.Switch(self.func_sel):
            with m.Case(ActivationFunc.RELU.value):
                m.d.comb += self.result.eq(relu_expr(self.mac_result, bits))
            with m.Case(ActivationFunc.SIGMOID.value):
                m.d.comb += self.result.eq(lut[self.sigmoid_index])
            with m.Default():
                # LINEAR, and TANH which has no modeled transformation
                m.d.comb += self.result.eq(saturate_expr(self.mac_result, bits))

        return m
