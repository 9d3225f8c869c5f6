"""Shared fixtures and utilities for unit tests."""

import numpy as np
import pytest
from onnx import TensorProto, helper, numpy_helper

from foldonnx.ir import import_onnx

_ONNX_DTYPES = {
    "float32": TensorProto.FLOAT,
    "float64": TensorProto.DOUBLE,
    "int64": TensorProto.INT64,
    "int32": TensorProto.INT32,
}


def create_tensor_value_info(name, dtype, shape):
    """Create a tensor value info for ONNX graph."""
    return helper.make_tensor_value_info(name, _ONNX_DTYPES.get(dtype, TensorProto.FLOAT), shape)


def create_initializer(name, values, dtype="float32"):
    """Create an initializer (constant tensor) for ONNX graph."""
    array = np.asarray(values).astype(dtype)
    return numpy_helper.from_array(array, name=name)


def create_constant_node(output, values, dtype="float32"):
    """Create a Constant node carrying a tensor value."""
    array = np.asarray(values).astype(dtype)
    return helper.make_node(
        "Constant",
        inputs=[],
        outputs=[output],
        value=numpy_helper.from_array(array, name=f"{output}_value"),
    )


def create_minimal_onnx_model(nodes, inputs, outputs, initializers=None, opset=10):
    """Create minimal ONNX model for testing without file I/O.

    Args:
        nodes: List of ONNX node objects
        inputs: List of tensor value info objects (graph inputs)
        outputs: List of tensor value info objects (graph outputs)
        initializers: Optional list of initializer tensors
        opset: Default-domain opset version

    Returns:
        ONNX ModelProto
    """
    graph = helper.make_graph(nodes, "test_graph", inputs, outputs, initializer=initializers or [])
    model = helper.make_model(graph, opset_imports=[helper.make_opsetid("", opset)])
    # Keep the IR version loadable by onnxruntime releases of any age
    model.ir_version = 7
    return model


def import_model(model):
    """Import a model's graph as (block, params)."""
    return import_onnx(model.graph)


def get_nodes_by_type(model, op_type):
    """Get all nodes of specific op_type in model."""
    return [node for node in model.graph.node if node.op_type == op_type]


def get_initializer_by_name(model, init_name):
    """Get initializer by name from model, or None if not found."""
    for init in model.graph.initializer:
        if init.name == init_name:
            return numpy_helper.to_array(init)
    return None


def run_onnx_model(model, inputs_dict):
    """Run ONNX model with onnxruntime and return outputs by name."""
    import onnxruntime as ort

    sess = ort.InferenceSession(model.SerializeToString(), providers=["CPUExecutionProvider"])
    names = [out.name for out in sess.get_outputs()]
    return dict(zip(names, sess.run(names, inputs_dict), strict=True))


@pytest.fixture
def weight_4x6():
    """A 4x6 float32 weight with distinct entries."""
    return np.arange(24, dtype=np.float32).reshape(4, 6)


@pytest.fixture
def slice9_model(weight_4x6):
    """Opset 9 model: Y = X + Slice(W, starts=[1], ends=[-1], axes=[1])."""
    nodes = [
        helper.make_node("Slice", ["W"], ["W_sliced"], starts=[1], ends=[-1], axes=[1]),
        helper.make_node("Add", ["X", "W_sliced"], ["Y"]),
    ]
    inputs = [create_tensor_value_info("X", "float32", [4, 4])]
    outputs = [create_tensor_value_info("Y", "float32", [4, 4])]
    initializers = [create_initializer("W", weight_4x6)]
    return create_minimal_onnx_model(nodes, inputs, outputs, initializers, opset=9)


@pytest.fixture
def concat_model():
    """Opset 10 model: Y = X + Concat(C1, C2) with two Constant nodes."""
    nodes = [
        create_constant_node("C1", np.ones((2, 3))),
        create_constant_node("C2", np.full((2, 3), 2.0)),
        helper.make_node("Concat", ["C1", "C2"], ["C"], axis=0),
        helper.make_node("Add", ["X", "C"], ["Y"]),
    ]
    inputs = [create_tensor_value_info("X", "float32", [4, 3])]
    outputs = [create_tensor_value_info("Y", "float32", [4, 3])]
    return create_minimal_onnx_model(nodes, inputs, outputs, opset=10)
