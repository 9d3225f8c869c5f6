"""Classify node inputs as constants and resolve them to arrays."""

__docformat__ = "restructuredtext"
__all__ = ["are_node_inputs_constant", "get_values", "is_constant"]

import numpy as np
from onnx import AttributeProto

from foldonnx.constant_fold._constants import CONSTANT_OP
from foldonnx.constant_fold._params import ValueToParamMap
from foldonnx.ir import PARAM_KIND, Node, Value


def _is_tensor_constant_node(node: Node) -> bool:
    return (
        node.kind == CONSTANT_OP
        and not node.must_be_none()
        and node.has_attribute("value")
        and node.kind_of("value") == AttributeProto.TENSOR
    )


def is_constant(value: Value, vals_to_params: ValueToParamMap) -> bool:
    """Check whether a value is known before runtime.

    A block input counts only when it is bound to a parameter; a block input
    without a binding is a real runtime input.
    """
    producer = value.node
    if producer.kind == PARAM_KIND:
        return value in vals_to_params
    return _is_tensor_constant_node(producer)


def are_node_inputs_constant(node: Node, vals_to_params: ValueToParamMap) -> bool:
    return all(is_constant(value, vals_to_params) for value in node.inputs)


def get_values(node: Node, vals_to_params: ValueToParamMap) -> list[np.ndarray]:
    """Resolve every input of a constant-input node to its array.

    :param node: Node whose inputs are all constant
    :param vals_to_params: Value to (name, array) map
    :return: Input arrays in input order
    """
    values = []
    for value in node.inputs:
        producer = value.node
        if producer.kind == PARAM_KIND:
            if value not in vals_to_params:
                raise RuntimeError(
                    f"get_values: input {value.debug_name!r} not found amongst constant parameters."
                )
            values.append(vals_to_params[value][1])
        elif producer.kind == CONSTANT_OP:
            values.append(producer.t("value"))
        else:
            raise RuntimeError(
                f"get_values: unsupported kind of constant node found: {producer.kind}."
            )
    return values
