"""Partial evaluation of constant-only subgraphs into parameters."""

__docformat__ = "restructuredtext"
__all__ = ["constant_fold"]

import warnings

import numpy as np

from foldonnx.constant_fold._backend import evaluate
from foldonnx.constant_fold._classify import are_node_inputs_constant, get_values
from foldonnx.constant_fold._constants import CONSTANT_OP, SUPPORTED_OPSETS
from foldonnx.constant_fold._params import (
    ValueToParamMap,
    build_params_map,
    build_value_to_params_map,
    erase_unused_block_inputs,
    erase_unused_values,
)
from foldonnx.ir import Block, Node


def _get_constant_parents_to_remove(node: Node) -> list[Node]:
    """Constant nodes feeding ``node`` that serve no other consumer."""
    parents = []
    for value in node.inputs:
        producer = value.node
        if producer.kind == CONSTANT_OP and len(value.uses) == 1:
            parents.append(producer)
    return parents


def _replace_with_param(
    block: Block, node: Node, array: np.ndarray, vals_to_params: ValueToParamMap
) -> None:
    """Swap ``node`` for a new parameter input holding ``array``."""
    new_input = block.add_input()
    new_input.infer_type_from(array)
    vals_to_params[new_input] = (new_input.debug_name, array)
    node.outputs[0].replace_all_uses_with(new_input)

    # Constant parents are collected while their only use is still this node,
    # then destroyed before the node itself. Parameter parents are left to
    # erase_unused_block_inputs after the traversal.
    constant_parents = _get_constant_parents_to_remove(node)
    node.remove_all_inputs()
    for parent in constant_parents:
        parent.destroy()
    node.destroy()


def constant_fold(block: Block, params: dict[str, np.ndarray], opset_version: int) -> bool:
    """Fold every node whose inputs are all constants into a parameter.

    This is partial evaluation rather than general simplification: a node is
    evaluated only when each input is a bound parameter or a tensor Constant.
    The block and ``params`` are updated in place. Results are bound as new
    block inputs, so later nodes in the same traversal can fold on top of them.

    :param block: Block to rewrite
    :param params: Parameter map, replaced by the surviving parameters
    :param opset_version: Opset in effect, 9 or 10
    :return: False if the opset is unsupported and nothing was done
    """
    if opset_version not in SUPPORTED_OPSETS:
        warnings.warn(
            f"Constant folding supported for only opsets "
            f"{' and '.join(map(str, SUPPORTED_OPSETS))}, "
            f"got {opset_version}. Constant folding not applied.",
            UserWarning,
            stacklevel=2,
        )
        return False

    vals_to_params = build_value_to_params_map(block, params)

    for node in list(block.nodes):
        if node.owning_block is None:
            # Already destroyed as the constant parent of an earlier node
            continue
        if len(node.outputs) != 1:
            # Multi-output nodes are never folded
            continue
        if not are_node_inputs_constant(node, vals_to_params):
            continue

        input_values = get_values(node, vals_to_params)
        if not input_values:
            # Terminal node such as Constant
            continue

        folded = evaluate(node, input_values, opset_version)
        if folded is None:
            continue

        _replace_with_param(block, node, folded, vals_to_params)

    erase_unused_values(vals_to_params)
    erase_unused_block_inputs(block)
    build_params_map(vals_to_params, params)
    return True
