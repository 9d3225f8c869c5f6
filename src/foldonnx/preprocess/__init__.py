"""ONNX model preprocessing utilities."""

__docformat__ = "restructuredtext"
__all__ = [
    "FOLDONNX_VERSION",
    "SUPPORTED_OPSETS",
    "cleanup_model",
    "convert_model_version",
    "load_and_preprocess",
    "mark_foldonnx_model",
]

from foldonnx.preprocess.cleanup import cleanup_model, mark_foldonnx_model
from foldonnx.preprocess.version_converter import (
    FOLDONNX_VERSION,
    SUPPORTED_OPSETS,
    convert_model_version,
    load_and_preprocess,
)
