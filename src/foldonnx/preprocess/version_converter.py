"""ONNX version conversion utilities."""

__docformat__ = "restructuredtext"
__all__ = ["convert_model_version", "load_and_preprocess"]

import warnings

import onnx
from onnx import ModelProto, version_converter

from foldonnx.constant_fold import SUPPORTED_OPSETS, get_opset_version
from foldonnx.utils import clear_onnx_docstring

FOLDONNX_VERSION = "2026.10.0"


def convert_model_version(
    model: ModelProto,
    target_opset: int = SUPPORTED_OPSETS[-1],
    warn_on_diff: bool = True,
) -> ModelProto:
    """Convert ONNX model to specified opset version.

    :param model: Input ONNX model
    :param target_opset: Target opset version
    :param warn_on_diff: Warn if constant folding does not support the target
    :return: Converted model (IR version set automatically by ONNX)
    """
    current_opset = get_opset_version(model)

    if warn_on_diff and target_opset not in SUPPORTED_OPSETS:
        warnings.warn(
            f"Target opset {target_opset} is not supported by constant folding "
            f"(supported: {list(SUPPORTED_OPSETS)}). The model will be left unfolded.",
            UserWarning,
            stacklevel=2,
        )

    if current_opset != target_opset:
        try:
            model = version_converter.convert_version(model, target_opset)
        except (ValueError, RuntimeError, AttributeError) as error:
            warnings.warn(
                f"Version conversion failed from opset {current_opset} to {target_opset}: {error}. "
                f"Keeping original opset version.",
                UserWarning,
                stacklevel=2,
            )

    return model


def load_and_preprocess(
    onnx_path: str,
    target_opset: int | None = None,
    check_model: bool = True,
    clear_docstrings: bool = False,
) -> ModelProto:
    """Load ONNX model and preprocess for FoldONNX.

    Preprocessing steps:
    1. Load model from file
    2. Validate with ONNX checker (if enabled)
    3. Convert to target opset version (if specified)
    4. Clear node docstrings (if enabled)

    :param onnx_path: Path to ONNX file
    :param target_opset: Target opset version (None = keep original)
    :param check_model: Whether to validate model with onnx.checker
    :param clear_docstrings: Whether to clear node docstrings
    :return: Preprocessed model
    """
    model = onnx.load(onnx_path)

    if check_model:
        try:
            onnx.checker.check_model(model)
        except (ValueError, AttributeError, TypeError, onnx.checker.ValidationError) as error:
            raise ValueError(f"Invalid ONNX model: {error}") from error

    if target_opset is not None:
        model = convert_model_version(model, target_opset=target_opset)

    if clear_docstrings:
        model = clear_onnx_docstring(model)

    return model
