"""Checker and runtime checks on exported models."""

__docformat__ = "restructuredtext"
__all__ = ["run_onnx_checker", "validate_with_onnxruntime"]

import numpy as np
import onnx
import onnxruntime as ort
from onnx import ModelProto

from foldonnx.utils import generate_random_inputs


def run_onnx_checker(model: ModelProto) -> dict:
    """Run ``onnx.checker.check_model`` and report instead of raising.

    :param model: ONNX model
    :return: ``{"valid": bool, "error": str | None}``
    """
    try:
        onnx.checker.check_model(model)
    except (ValueError, TypeError, onnx.checker.ValidationError) as error:
        return {"valid": False, "error": str(error)}
    return {"valid": True, "error": None}


def validate_with_onnxruntime(
    model: ModelProto,
    test_inputs: dict[str, np.ndarray] | None = None,
) -> dict:
    """Load a model in ONNX Runtime and run it once.

    Folded initializers carry the dtype of the evaluated array, so a run is the
    cheapest way to catch a dtype that no longer matches its consumer. Without
    ``test_inputs`` one random sample is generated from the model signature.

    :param model: ONNX model
    :param test_inputs: Inputs keyed by graph input name
    :return: Report with ``can_load``, ``can_infer``, ``error`` and, after a
        successful run, ``output_shapes``
    """
    report: dict = {"can_load": False, "can_infer": False, "error": None}
    try:
        session = ort.InferenceSession(
            model.SerializeToString(), providers=["CPUExecutionProvider"]
        )
    except (RuntimeError, ValueError, OSError) as error:
        report["error"] = str(error)
        return report
    report["can_load"] = True

    if test_inputs is None:
        test_inputs = generate_random_inputs(model)[0]
    try:
        outputs = session.run(None, test_inputs)
    except (RuntimeError, ValueError, TypeError) as error:
        report["error"] = f"Inference failed: {error}"
        return report

    report["can_infer"] = True
    report["output_shapes"] = [list(out.shape) for out in outputs]
    return report
