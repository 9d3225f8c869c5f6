"""Validation utilities for folded blocks and ONNX models."""

__docformat__ = "restructuredtext"
__all__ = [
    "check_broken_connections",
    "check_dangling_uses",
    "check_orphan_initializers",
    "check_params_consistency",
    "compare_model_outputs",
    "generate_inputs_from_bounds",
    "load_test_inputs",
    "run_onnx_checker",
    "run_onnx_inference",
    "validate_model",
    "validate_with_onnxruntime",
]

import numpy as np
from onnx import ModelProto

from foldonnx.model_validate.graph_validator import (
    check_broken_connections,
    check_dangling_uses,
    check_orphan_initializers,
    check_params_consistency,
)
from foldonnx.model_validate.model_checks import run_onnx_checker, validate_with_onnxruntime
from foldonnx.model_validate.numerical_compare import (
    compare_model_outputs,
    generate_inputs_from_bounds,
    load_test_inputs,
    run_onnx_inference,
)
from foldonnx.utils import get_initializers


def validate_model(model: ModelProto, test_inputs: dict[str, np.ndarray] | None = None) -> dict:
    """Run the checker, a runtime pass and the graph checks on a model.

    :param model: ONNX model
    :param test_inputs: Inputs keyed by graph input name (default: random)
    :return: Per-check results plus an overall ``is_valid`` flag
    """
    nodes = list(model.graph.node)
    initializers = get_initializers(model)

    results: dict = {
        "onnx_checker": run_onnx_checker(model),
        "runtime": validate_with_onnxruntime(model, test_inputs),
        "broken_connections": check_broken_connections(
            nodes, initializers, list(model.graph.input)
        ),
        "orphan_initializers": check_orphan_initializers(
            nodes, initializers, list(model.graph.output)
        ),
    }
    results["is_valid"] = (
        results["onnx_checker"]["valid"]
        and results["runtime"]["can_infer"]
        and not results["broken_connections"]
        and not results["orphan_initializers"]
    )
    return results
