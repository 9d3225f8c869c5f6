"""Conversion between ONNX graphs and :class:`~foldonnx.ir.Block`."""

__docformat__ = "restructuredtext"
__all__ = ["export_onnx", "import_onnx"]

import numpy as np
import onnx
from onnx import AttributeProto, GraphProto, NodeProto, TensorProto, ValueInfoProto

from foldonnx.ir._graph import Block, Value


def _read_value_info(value: Value, info: ValueInfoProto) -> None:
    tensor_type = info.type.tensor_type
    value.elem_type = tensor_type.elem_type
    if tensor_type.HasField("shape"):
        value.shape = tuple(
            d.dim_value if d.HasField("dim_value") else (d.dim_param or None)
            for d in tensor_type.shape.dim
        )


def _read_initializer_info(value: Value, tensor: TensorProto) -> None:
    value.elem_type = tensor.data_type
    value.shape = tuple(int(d) for d in tensor.dims)


def _subgraph_free_names(graph: GraphProto) -> set[str]:
    """Names a nested graph reads but does not define itself."""
    defined = {inp.name for inp in graph.input}
    defined.update(init.name for init in graph.initializer)
    used: set[str] = set()
    for node in graph.node:
        used.update(name for name in node.input if name)
        for attr in node.attribute:
            for sub in _attribute_subgraphs(attr):
                used.update(_subgraph_free_names(sub))
        defined.update(node.output)
    used.update(out.name for out in graph.output)
    return used - defined


def _attribute_subgraphs(attr: AttributeProto) -> list[GraphProto]:
    if attr.type == AttributeProto.GRAPH:
        return [attr.g]
    if attr.type == AttributeProto.GRAPHS:
        return list(attr.graphs)
    return []


def import_onnx(graph: GraphProto) -> tuple[Block, dict[str, np.ndarray]]:
    """Build a Block and its parameter map from an ONNX graph.

    Graph inputs become parameter inputs in their declared order. Initializers
    that are not also declared as graph inputs are appended after them. The
    returned parameter map holds every initializer by name.

    :param graph: ONNX graph
    :return: Tuple of (block, parameter map)
    """
    block = Block()
    values: dict[str, Value] = {}
    initializers = {init.name: init for init in graph.initializer}

    for info in graph.input:
        value = block.add_input(info.name)
        _read_value_info(value, info)
        values[info.name] = value

    for name, init in initializers.items():
        if name in values:
            continue
        value = block.add_input(name)
        _read_initializer_info(value, init)
        values[name] = value

    value_infos = {info.name: info for info in graph.value_info}

    def _lookup(name: str, reader: str) -> Value:
        if not name:
            return block.none_value()
        if name not in values:
            raise ValueError(f"{reader} reads undefined value {name!r}.")
        return values[name]

    for proto in graph.node:
        node = block.create_node(
            proto.op_type,
            [_lookup(name, proto.name or proto.op_type) for name in proto.input],
            num_outputs=len(proto.output),
            domain=proto.domain,
            name=proto.name,
        )
        node.doc_string = proto.doc_string
        for attr in proto.attribute:
            copied = AttributeProto()
            copied.CopyFrom(attr)
            node.set_attribute(copied)
            for sub in _attribute_subgraphs(attr):
                for free in sorted(_subgraph_free_names(sub)):
                    if free in values:
                        block.capture(values[free])
        for output, name in zip(node.outputs, proto.output, strict=True):
            block.set_debug_name(output, name)
            if name:
                values[name] = output
                if name in value_infos:
                    _read_value_info(output, value_infos[name])
        block.append_node(node)

    for info in graph.output:
        block.register_output(_lookup(info.name, "Graph output"), info.name)

    params = {
        name: onnx.numpy_helper.to_array(init) for name, init in initializers.items()
    }
    return block, params


def _make_value_info(value: Value, name: str | None = None) -> ValueInfoProto:
    shape = None if value.shape is None else list(value.shape)
    return onnx.helper.make_tensor_value_info(
        name if name is not None else value.debug_name, value.elem_type, shape
    )


def _value_name(value: Value) -> str:
    return "" if value.node.must_be_none() else value.debug_name


def _restore_public_names(values: list[Value], public_names: list[str]) -> list[NodeProto]:
    """Identity nodes mapping renamed values back to the names others rely on."""
    return [
        onnx.helper.make_node(
            "Identity", [value.debug_name], [public_name], name=f"{public_name}_identity"
        )
        for value, public_name in zip(values, public_names, strict=True)
        if value.debug_name != public_name
    ]


def export_onnx(
    block: Block,
    params: dict[str, np.ndarray],
    name: str = "graph",
    keep_initializers_as_inputs: bool = False,
    output_infos: list[ValueInfoProto] | None = None,
) -> GraphProto:
    """Write a Block and its parameter map back to an ONNX graph.

    :param block: Block to export
    :param params: Parameter map (initializers by name)
    :param name: Graph name
    :param keep_initializers_as_inputs: Also list initializers as graph inputs
    :param output_infos: Original output value infos, reused when names match
    :return: ONNX graph
    """
    inputs = []
    initializers = []
    for value in block.inputs:
        is_param = value.debug_name in params
        if is_param:
            initializers.append(
                onnx.numpy_helper.from_array(np.asarray(params[value.debug_name]), value.debug_name)
            )
        if not is_param or keep_initializers_as_inputs:
            inputs.append(_make_value_info(value))

    nodes = []
    for node in block.nodes:
        if node.must_be_none():
            continue
        proto = onnx.helper.make_node(
            node.kind,
            [_value_name(v) for v in node.inputs],
            [v.debug_name for v in node.outputs],
            name=node.name or None,
            domain=node.domain or None,
            doc_string=node.doc_string or None,
        )
        proto.attribute.extend(node.attributes.values())
        nodes.append(proto)

    nodes.extend(_restore_public_names(block.captures, block.captured_names))
    nodes.extend(_restore_public_names(block.outputs, block.output_names))

    infos_by_name = {info.name: info for info in output_infos or []}
    outputs = []
    for value, public_name in zip(block.outputs, block.output_names, strict=True):
        if public_name in infos_by_name:
            outputs.append(infos_by_name[public_name])
        else:
            outputs.append(_make_value_info(value, public_name))

    return onnx.helper.make_graph(nodes, name, inputs, outputs, initializer=initializers)
