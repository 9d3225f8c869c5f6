"""ONNX constant folding module."""

__docformat__ = "restructuredtext"
__all__ = [
    "ONNX_DTYPE_TO_NUMPY",
    "SUPPORTED_OPSETS",
    "are_node_inputs_constant",
    "build_params_map",
    "build_value_to_params_map",
    "constant_fold",
    "evaluate",
    "fold_model",
    "fold_model_with_stats",
    "get_opset_version",
    "is_constant",
]

from foldonnx.constant_fold._backend import evaluate
from foldonnx.constant_fold._classify import are_node_inputs_constant, is_constant
from foldonnx.constant_fold._constants import ONNX_DTYPE_TO_NUMPY, SUPPORTED_OPSETS
from foldonnx.constant_fold._fold import constant_fold
from foldonnx.constant_fold._model import fold_model, fold_model_with_stats, get_opset_version
from foldonnx.constant_fold._params import build_params_map, build_value_to_params_map
