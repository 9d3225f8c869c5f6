"""Graph structure validation for folded blocks and ONNX models."""

__docformat__ = "restructuredtext"
__all__ = [
    "check_broken_connections",
    "check_dangling_uses",
    "check_orphan_initializers",
    "check_params_consistency",
]

import numpy as np
from onnx import NodeProto, TensorProto, ValueInfoProto

from foldonnx.ir import Block, Value


def _describe(value: Value) -> str:
    return value.debug_name or f"%{value.unique}"


def check_dangling_uses(block: Block) -> list[str]:
    """Find edges that reference values outside the live block.

    Every node input must be a live block input or an output of a live node,
    and every use recorded on a value must point back at that input slot.

    :param block: Block to check
    :return: List of error strings (empty = valid)
    """
    errors = []
    live_values = {id(value) for value in block.inputs}
    live_nodes = [*block.nodes, block.return_node, block.capture_node]
    for node in block.nodes:
        live_values.update(id(value) for value in node.outputs)

    for node in live_nodes:
        for offset, value in enumerate(node.inputs):
            if id(value) not in live_values:
                errors.append(
                    f"{node.kind} node {node.name!r} input {offset} reads dead value "
                    f"{_describe(value)}"
                )
            if not any(use.user is node and use.offset == offset for use in value.uses):
                errors.append(
                    f"{node.kind} node {node.name!r} input {offset} is missing from the "
                    f"use list of {_describe(value)}"
                )

    for node in [block.param_node, *block.nodes]:
        for value in node.outputs:
            for use in value.uses:
                if use.user.owning_block is not block:
                    errors.append(f"{_describe(value)} is used by destroyed node {use.user}")
                elif use.user.inputs[use.offset] is not value:
                    errors.append(f"{_describe(value)} has a stale use at {use}")

    return errors


def check_params_consistency(block: Block, params: dict[str, np.ndarray]) -> list[str]:
    """Check that the parameter map matches the used parameter inputs.

    :param block: Block after folding
    :param params: Parameter map after folding
    :return: List of error strings (empty = valid)
    """
    errors = []
    used_inputs = {value.debug_name for value in block.inputs if value.has_uses()}
    all_inputs = {value.debug_name for value in block.inputs}

    for name in params:
        if name not in all_inputs:
            errors.append(f"Parameter {name!r} has no block input")
        elif name not in used_inputs:
            errors.append(f"Parameter {name!r} is bound to an unused block input")

    errors.extend(
        f"Block input {value.debug_name!r} has no uses"
        for value in block.inputs
        if not value.has_uses()
    )
    return errors


def check_broken_connections(
    nodes: list[NodeProto],
    initializers: dict[str, TensorProto],
    inputs: list[ValueInfoProto],
) -> list[dict]:
    """Find nodes with missing input connections.

    :param nodes: Model nodes
    :param initializers: Model initializers
    :param inputs: Model inputs
    :return: List of connection error dictionaries
    """
    available_tensors = set(initializers.keys())
    available_tensors.update(inp.name for inp in inputs)

    for node in nodes:
        available_tensors.update(node.output)

    return [
        {
            "node": node.name if node.name else f"{node.op_type}_unnamed",
            "op_type": node.op_type,
            "missing_input": inp,
        }
        for node in nodes
        for inp in node.input
        if inp and inp not in available_tensors
    ]


def check_orphan_initializers(
    nodes: list[NodeProto],
    initializers: dict[str, TensorProto],
    outputs: list[ValueInfoProto] | None = None,
) -> list[str]:
    """Find initializers not used by any node or graph output.

    :param nodes: Model nodes
    :param initializers: Model initializers
    :param outputs: Model outputs
    :return: List of orphan initializer names
    """
    used_initializers = set()
    for node in nodes:
        used_initializers.update(node.input)
    used_initializers.update(out.name for out in outputs or [])

    return [init_name for init_name in initializers if init_name not in used_initializers]
