"""ONNX model cleanup utilities."""

__docformat__ = "restructuredtext"
__all__ = ["cleanup_model", "mark_foldonnx_model"]

from onnx import ModelProto

from foldonnx.utils import clear_onnx_docstring


def mark_foldonnx_model(
    model: ModelProto,
    version: str = "1.0.0",
) -> ModelProto:
    """Mark model as processed by FoldONNX.

    :param model: Input ONNX model
    :param version: FoldONNX version string
    :return: Marked model
    """
    model.producer_name = f"FoldONNX-{version}"
    model.doc_string = f"Constant folded by FoldONNX v{version}"
    return model


def cleanup_model(
    model: ModelProto,
    clear_docs: bool = True,
    mark_producer: bool = True,
    foldonnx_version: str = "1.0.0",
) -> ModelProto:
    """Full cleanup pipeline for ONNX model.

    :param model: Input ONNX model
    :param clear_docs: Whether to clear node docstrings
    :param mark_producer: Whether to mark as FoldONNX
    :param foldonnx_version: FoldONNX version string
    :return: Cleaned model
    """
    if clear_docs:
        model = clear_onnx_docstring(model)

    if mark_producer:
        model = mark_foldonnx_model(model, version=foldonnx_version)

    return model
