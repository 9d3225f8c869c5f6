"""NumPy evaluation of foldable operators.

Each evaluator takes the node and the concrete input arrays and returns the
folded array, or None when the node cannot be folded. :func:`evaluate` never
raises for malformed nodes; it warns and returns None instead.
"""

__docformat__ = "restructuredtext"
__all__ = ["evaluate"]

import warnings
from collections.abc import Callable, Sequence
from typing import Any

import numpy as np

from foldonnx.constant_fold._constants import ONNX_DTYPE_TO_NUMPY, SUPPORTED_OPSETS
from foldonnx.constant_fold._onnx_attrs import get_fold_attrs
from foldonnx.ir import Node


def _warn_not_applied(reason: str) -> None:
    warnings.warn(
        f"Constant folding - {reason}. Constant folding not applied.",
        UserWarning,
        stacklevel=3,
    )


def _normalize_start_end(start: int, end: int, extent: int) -> tuple[int, int]:
    """Resolve negative indices against ``extent`` and clamp ``end`` to it."""
    if start < 0:
        start += extent
    if end < 0:
        end += extent
    # An end past the dimension means "to the end".
    if end > extent:
        end = extent
    return start, end


def _narrow(tensor: np.ndarray, axis: int, start: int, length: int) -> np.ndarray:
    index: list[slice] = [slice(None)] * tensor.ndim
    index[axis] = slice(start, start + length)
    return tensor[tuple(index)]


def _narrow_axes(
    tensor: np.ndarray,
    starts: Sequence[int],
    ends: Sequence[int],
    axes: Sequence[int],
) -> np.ndarray | None:
    """Narrow ``tensor`` along each axis in turn.

    Every axis is resolved against the tensor already narrowed by the
    previous axes.

    :param tensor: Data to slice
    :param starts: Start index per axis
    :param ends: End index (exclusive) per axis
    :param axes: Axis per start/end pair
    :return: Narrowed array or None if a range is empty or out of bounds
    """
    result = tensor
    for start, end, axis in zip(starts, ends, axes, strict=True):
        if not -result.ndim <= axis < result.ndim:
            _warn_not_applied(f"Slice axis {axis} is out of range for rank {result.ndim}")
            return None
        axis = axis % result.ndim
        extent = result.shape[axis]
        start, end = _normalize_start_end(int(start), int(end), extent)
        length = end - start
        if start < 0 or length < 0 or start > extent - length:
            return None
        result = _narrow(result, axis, start, length)
    return result


def _is_int_vector(tensor: np.ndarray) -> bool:
    return tensor.ndim == 1 and np.issubdtype(tensor.dtype, np.integer)


def _execute_slice_opset9(node: Node, inputs: list[np.ndarray]) -> np.ndarray | None:
    """Execute opset 9 Slice, where starts/ends/axes are attributes.

    :param node: Slice node
    :param inputs: Exactly one data array
    :return: Sliced array or None
    """
    if len(inputs) != 1:
        _warn_not_applied("Invalid number of inputs found for opset 9 onnx::Slice op")
        return None
    attrs = get_fold_attrs(node, 9)
    return _narrow_axes(inputs[0], attrs["starts"], attrs["ends"], attrs["axes"])


def _execute_slice_opset10(node: Node, inputs: list[np.ndarray]) -> np.ndarray | None:
    """Execute opset 10 Slice, where starts/ends/axes/steps are inputs.

    When ``axes`` is omitted, every start/end pair applies to axis 0.

    :param node: Slice node
    :param inputs: ``[data, starts, ends, axes?, steps?]``
    :return: Sliced array or None
    """
    if not 3 <= len(inputs) <= 5:
        _warn_not_applied("Invalid number of inputs found for opset 10 onnx::Slice op")
        return None

    starts, ends = inputs[1], inputs[2]
    if not (_is_int_vector(starts) and _is_int_vector(ends)):
        _warn_not_applied("Invalid 'starts' or 'ends' inputs found for opset 10 onnx::Slice op")
        return None
    num_slices = starts.shape[0]
    if ends.shape[0] != num_slices:
        _warn_not_applied("Mismatched 'starts' and 'ends' lengths for opset 10 onnx::Slice op")
        return None

    if len(inputs) > 3:
        axes = inputs[3]
        if not _is_int_vector(axes):
            _warn_not_applied("Invalid 'axes' input found for opset 10 onnx::Slice op")
            return None
        if axes.shape[0] != num_slices:
            _warn_not_applied("Invalid 'axes' or 'ends' inputs found for opset 10 onnx::Slice op")
            return None
    else:
        axes = np.zeros(num_slices, dtype=np.int64)

    if len(inputs) > 4:
        steps = inputs[4]
        if not _is_int_vector(steps):
            _warn_not_applied("Invalid 'steps' input found for opset 10 onnx::Slice op")
            return None
        if steps.shape[0] != num_slices:
            _warn_not_applied("Invalid 'steps' or 'ends' inputs found for opset 10 onnx::Slice op")
            return None
        if np.any(steps != 1):
            _warn_not_applied("Only steps=1 can be constant folded for opset 10 onnx::Slice op")
            return None

    return _narrow_axes(inputs[0], starts.tolist(), ends.tolist(), axes.tolist())


def _execute_slice(node: Node, inputs: list[np.ndarray], opset_version: int) -> np.ndarray | None:
    if opset_version == 9:
        return _execute_slice_opset9(node, inputs)
    if opset_version == 10:
        return _execute_slice_opset10(node, inputs)
    _warn_not_applied(
        f"unsupported opset version {opset_version}, expected one of {SUPPORTED_OPSETS}"
    )
    return None


def _execute_concat(node: Node, inputs: list[np.ndarray], opset_version: int) -> np.ndarray:
    axis = get_fold_attrs(node, opset_version)["axis"]
    return np.concatenate(inputs, axis=axis)


def _single_input(node: Node, inputs: list[np.ndarray]) -> np.ndarray | None:
    if len(inputs) != 1:
        _warn_not_applied(f"{node.kind} expects 1 input but got {len(inputs)}")
        return None
    return inputs[0]


def _execute_unsqueeze(
    node: Node, inputs: list[np.ndarray], opset_version: int
) -> np.ndarray | None:
    data = _single_input(node, inputs)
    if data is None:
        return None
    axes = get_fold_attrs(node, opset_version)["axes"]
    # Each insertion sees the rank produced by the previous one.
    for axis in axes:
        data = np.expand_dims(data, axis=axis)
    return data


def _execute_transpose(
    node: Node, inputs: list[np.ndarray], opset_version: int
) -> np.ndarray | None:
    data = _single_input(node, inputs)
    if data is None:
        return None
    perm = get_fold_attrs(node, opset_version)["perm"]
    return np.transpose(data, perm)


def _execute_cast(node: Node, inputs: list[np.ndarray], opset_version: int) -> np.ndarray | None:
    data = _single_input(node, inputs)
    if data is None:
        return None
    target_dtype = get_fold_attrs(node, opset_version)["to"]
    if target_dtype not in ONNX_DTYPE_TO_NUMPY:
        _warn_not_applied(f"Unsupported Cast dtype: {target_dtype}")
        return None
    return data.astype(ONNX_DTYPE_TO_NUMPY[target_dtype])


_EVALUATORS: dict[str, Callable[[Node, list[np.ndarray], int], Any]] = {
    "Cast": _execute_cast,
    "Concat": _execute_concat,
    "Slice": _execute_slice,
    "Transpose": _execute_transpose,
    "Unsqueeze": _execute_unsqueeze,
}


def evaluate(node: Node, inputs: list[np.ndarray], opset_version: int) -> np.ndarray | None:
    """Evaluate a node on constant inputs.

    :param node: Node to evaluate
    :param inputs: Concrete input arrays, in input order
    :param opset_version: Opset in effect
    :return: Folded array (owning its memory) or None if the node is not foldable
    """
    evaluator = _EVALUATORS.get(node.kind)
    if evaluator is None:
        _warn_not_applied(f"onnx::{node.kind} is not supported")
        return None

    try:
        result = evaluator(node, inputs, opset_version)
    except (ValueError, TypeError, IndexError, NotImplementedError) as error:
        _warn_not_applied(f"onnx::{node.kind} could not be evaluated: {error}")
        return None

    if result is None:
        return None
    return np.array(result, copy=True)
