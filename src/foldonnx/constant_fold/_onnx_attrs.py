"""Attribute extraction and validation for foldable operators."""

__docformat__ = "restructuredtext"
__all__ = ["get_fold_attrs", "scan_attrs"]

from collections.abc import Callable
from typing import Any

import onnx

from foldonnx.ir import Node

# Attribute type extractors
EXTRACT_ATTR_MAP: dict[int, Any] = {
    0: lambda x: None,  # UNDEFINED
    1: lambda x: x.f,  # FLOAT
    2: lambda x: x.i,  # INT
    3: lambda x: x.s.decode("utf-8"),  # STRING
    4: lambda x: onnx.numpy_helper.to_array(x.t),  # TENSOR
    5: lambda x: x.g,  # GRAPH
    6: lambda x: tuple(x.floats),  # FLOATS
    7: lambda x: tuple(x.ints),  # INTS
    8: lambda x: None,  # STRINGS
    9: lambda x: None,  # TENSORS
    10: lambda x: None,  # GRAPHS
    11: lambda x: None,  # SPARSE_TENSOR
}

_INT = onnx.AttributeProto.INT
_INTS = onnx.AttributeProto.INTS


def scan_attrs(default_attrs: dict[str, Any], attrs) -> dict[str, Any]:
    """
    Scan and extract ONNX node attributes.

    :param default_attrs: Default attribute values
    :param attrs: ONNX node attributes
    :return: Extracted attributes merged with defaults
    """
    result = default_attrs.copy()
    for attr in attrs:
        extract = EXTRACT_ATTR_MAP.get(attr.type)
        if extract is None:
            raise NotImplementedError(
                f"Attribute {attr.name} with type {attr.type} is not supported"
            )
        result[attr.name] = extract(attr)
    return result


def _require(attrs: dict[str, Any], name: str, op_name: str) -> None:
    if attrs[name] is None:
        raise ValueError(f"{op_name} '{name}' attribute is required")


def _check_kinds(node: Node, kinds: dict[str, int]) -> None:
    """Reject attributes present with the wrong ONNX kind."""
    for name, kind in kinds.items():
        if node.has_attribute(name) and node.kind_of(name) != kind:
            raise ValueError(
                f"{node.kind} '{name}' attribute must be "
                f"{onnx.AttributeProto.AttributeType.Name(kind)}, got "
                f"{onnx.AttributeProto.AttributeType.Name(node.kind_of(name))}"
            )


def get_attrs_slice_opset9(node: Node) -> dict[str, Any]:
    """Extract opset 9 Slice attributes (starts/ends/axes carried as attributes)."""
    _check_kinds(node, {"starts": _INTS, "ends": _INTS, "axes": _INTS})
    attrs = scan_attrs({"starts": None, "ends": None, "axes": None}, node.attributes.values())
    _require(attrs, "starts", "Slice")
    _require(attrs, "ends", "Slice")
    if len(attrs["starts"]) != len(attrs["ends"]):
        raise ValueError(
            f"Slice starts {attrs['starts']} and ends {attrs['ends']} differ in length"
        )
    if attrs["axes"] is None:
        attrs["axes"] = tuple(range(len(attrs["starts"])))
    elif len(attrs["axes"]) != len(attrs["starts"]):
        raise ValueError(
            f"Slice axes {attrs['axes']} and starts {attrs['starts']} differ in length"
        )
    return attrs


def get_attrs_concat(node: Node) -> dict[str, Any]:
    """Extract Concat operator attributes."""
    _check_kinds(node, {"axis": _INT})
    attrs = scan_attrs({"axis": None}, node.attributes.values())
    _require(attrs, "axis", "Concat")
    return attrs


def get_attrs_unsqueeze(node: Node) -> dict[str, Any]:
    """Extract Unsqueeze operator attributes."""
    _check_kinds(node, {"axes": _INTS})
    attrs = scan_attrs({"axes": None}, node.attributes.values())
    _require(attrs, "axes", "Unsqueeze")
    return attrs


def get_attrs_transpose(node: Node) -> dict[str, Any]:
    """Extract Transpose operator attributes.

    ``perm`` is required here even though ONNX defaults it to reversed axes.
    """
    _check_kinds(node, {"perm": _INTS})
    attrs = scan_attrs({"perm": None}, node.attributes.values())
    _require(attrs, "perm", "Transpose")
    return attrs


def get_attrs_cast(node: Node) -> dict[str, Any]:
    """Extract Cast operator attributes."""
    _check_kinds(node, {"to": _INT})
    attrs = scan_attrs({"to": None}, node.attributes.values())
    _require(attrs, "to", "Cast")
    return attrs


FOLD_ATTRS_MAP: dict[str, Callable[[Node], dict[str, Any]]] = {
    "Cast": get_attrs_cast,
    "Concat": get_attrs_concat,
    "Transpose": get_attrs_transpose,
    "Unsqueeze": get_attrs_unsqueeze,
}


def get_fold_attrs(node: Node, opset_version: int) -> dict[str, Any]:
    """
    Get validated attributes of a foldable node.

    :param node: Node to read
    :param opset_version: Opset in effect (selects the Slice layout)
    :return: Attribute dictionary with defaults filled in
    """
    if node.kind == "Slice" and opset_version == 9:
        return get_attrs_slice_opset9(node)
    extractor = FOLD_ATTRS_MAP.get(node.kind)
    if extractor is None:
        raise NotImplementedError(f"Constant folding of {node.kind} is not supported")
    return extractor(node)
