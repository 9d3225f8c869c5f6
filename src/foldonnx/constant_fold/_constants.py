"""Constants and type mappings for constant folding."""

__docformat__ = "restructuredtext"
__all__ = [
    "CONSTANT_OP",
    "ONNX_DTYPE_TO_NUMPY",
    "SUPPORTED_OPSETS",
]

import numpy as np

# Opsets whose Slice layout the evaluator understands
SUPPORTED_OPSETS = (9, 10)

CONSTANT_OP = "Constant"

# ONNX data type to NumPy dtype mapping, numeric types only.
# Unsigned ONNX types map to the next larger signed dtype; FLOAT16 is
# evaluated as float32.
ONNX_DTYPE_TO_NUMPY: dict[int, type] = {
    1: np.float32,  # FLOAT
    2: np.uint8,  # UINT8
    3: np.int8,  # INT8
    4: np.int32,  # UINT16
    5: np.int16,  # INT16
    6: np.int32,  # INT32
    7: np.int64,  # INT64
    10: np.float32,  # FLOAT16
    11: np.float64,  # DOUBLE
    12: np.int64,  # UINT32
}
