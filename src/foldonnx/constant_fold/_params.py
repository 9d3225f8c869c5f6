"""Synchronization between a Block's parameter inputs and a parameter map."""

__docformat__ = "restructuredtext"
__all__ = [
    "ValueToParamMap",
    "build_params_map",
    "build_value_to_params_map",
    "erase_unused_block_inputs",
    "erase_unused_values",
]

import numpy as np

from foldonnx.ir import Block, Value

# Block input -> (parameter name, array)
ValueToParamMap = dict[Value, tuple[str, np.ndarray]]


def build_value_to_params_map(block: Block, params: dict[str, np.ndarray]) -> ValueToParamMap:
    """Bind block inputs to parameters by name.

    Inputs whose names are absent from ``params`` stay unbound; they are the
    real runtime inputs.

    :param block: Block whose inputs are scanned
    :param params: Parameter map
    :return: Value to (name, array) map
    """
    vals_to_params: ValueToParamMap = {}
    for value in block.inputs:
        if value.debug_name in params:
            vals_to_params[value] = (value.debug_name, params[value.debug_name])
    return vals_to_params


def build_params_map(vals_to_params: ValueToParamMap, params: dict[str, np.ndarray]) -> None:
    """Replace the contents of ``params`` with the surviving bindings.

    This is a full replace: parameters whose inputs were erased are dropped.
    """
    params.clear()
    for name, array in vals_to_params.values():
        params[name] = array


def erase_unused_values(vals_to_params: ValueToParamMap) -> None:
    for value in [value for value in vals_to_params if not value.has_uses()]:
        del vals_to_params[value]


def erase_unused_block_inputs(block: Block) -> None:
    # Reverse order keeps the remaining indices valid while erasing.
    for index in reversed(range(len(block.inputs))):
        if not block.inputs[index].has_uses():
            block.erase_input(index)
