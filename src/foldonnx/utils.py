"""Utility functions for ONNX model manipulation."""

__docformat__ = "restructuredtext"
__all__ = [
    "clear_onnx_docstring",
    "generate_random_inputs",
    "get_initializers",
    "get_runtime_inputs",
]

import numpy as np
from onnx import ModelProto, TensorProto, ValueInfoProto


def clear_onnx_docstring(model: ModelProto) -> ModelProto:
    """Clear all doc strings from ONNX model nodes.

    :param model: ONNX model
    :return: Model with cleared docstrings
    """
    for node in model.graph.node:
        node.doc_string = ""
    return model


def get_initializers(model: ModelProto) -> dict[str, TensorProto]:
    """Get initializers from ONNX model.

    :param model: ONNX model
    :return: Dictionary of initializers
    """
    return {initializer.name: initializer for initializer in model.graph.initializer}


def get_runtime_inputs(model: ModelProto) -> list[ValueInfoProto]:
    """Get graph inputs that are fed at runtime.

    Initializers are sometimes also listed as graph inputs; those are skipped.

    :param model: ONNX model
    :return: List of runtime input value infos
    """
    initializer_names = {init.name for init in model.graph.initializer}
    return [inp for inp in model.graph.input if inp.name not in initializer_names]


# ONNX elem_type to NumPy dtype for feeding inputs
_INPUT_DTYPES: dict[int, type] = {
    1: np.float32,  # FLOAT
    2: np.uint8,  # UINT8
    3: np.int8,  # INT8
    6: np.int32,  # INT32
    7: np.int64,  # INT64
    10: np.float16,  # FLOAT16
    11: np.float64,  # DOUBLE
}


def generate_random_inputs(
    model: ModelProto,
    num_samples: int = 1,
) -> list[dict[str, np.ndarray]]:
    """Generate random inputs matching model signature.

    Symbolic or unknown dimensions are fed as 1.

    :param model: ONNX model
    :param num_samples: Number of input samples to generate
    :return: List of input dictionaries
    """
    inputs_list = []
    rng = np.random.default_rng()
    runtime_inputs = get_runtime_inputs(model)

    for _ in range(num_samples):
        input_dict = {}
        for input_info in runtime_inputs:
            shape = tuple(
                d.dim_value if d.HasField("dim_value") else 1
                for d in input_info.type.tensor_type.shape.dim
            )
            dtype = _INPUT_DTYPES.get(input_info.type.tensor_type.elem_type, np.float32)

            if dtype in (np.float32, np.float64, np.float16):
                input_array = rng.standard_normal(shape).astype(dtype)
            else:
                input_array = rng.integers(0, 10, size=shape).astype(dtype)

            input_dict[input_info.name] = input_array

        inputs_list.append(input_dict)

    return inputs_list
