"""FoldONNX: partial evaluation of constant subgraphs in ONNX models."""

__docformat__ = "restructuredtext"
__version__ = "2026.10.0"

__all__ = [
    "FOLDONNX_VERSION",
    "SUPPORTED_OPSETS",
    "FoldConfig",
    "FoldONNX",
    "ValidationConfig",
    "__version__",
    "constant_fold",
    "fold_model",
]

from foldonnx.configs import FoldConfig, ValidationConfig
from foldonnx.constant_fold import SUPPORTED_OPSETS, constant_fold, fold_model
from foldonnx.foldonnx import FoldONNX
from foldonnx.preprocess import FOLDONNX_VERSION
