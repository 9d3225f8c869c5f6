"""Constant folding applied to whole ONNX models."""

__docformat__ = "restructuredtext"
__all__ = ["fold_model", "fold_model_with_stats", "get_opset_version"]

from onnx import GraphProto, ModelProto

from foldonnx.constant_fold._fold import constant_fold
from foldonnx.ir import export_onnx, import_onnx


def get_opset_version(model: ModelProto) -> int:
    """Get the default-domain opset of a model.

    :param model: ONNX model
    :return: Opset version, or 0 if the model imports no default-domain opset
    """
    for opset in model.opset_import:
        if opset.domain in ("", "ai.onnx"):
            return opset.version
    return 0


def _initializers_listed_as_inputs(graph: GraphProto) -> bool:
    input_names = {inp.name for inp in graph.input}
    return len(graph.initializer) > 0 and all(
        init.name in input_names for init in graph.initializer
    )


def _defined_names(graph: GraphProto) -> set[str]:
    names = {inp.name for inp in graph.input}
    names.update(init.name for init in graph.initializer)
    for node in graph.node:
        names.update(node.output)
    return names


def fold_model_with_stats(
    model: ModelProto,
    opset_version: int | None = None,
    keep_initializers_as_inputs: bool | None = None,
) -> tuple[ModelProto, dict]:
    """Fold constant subgraphs of a model and report what changed.

    The input model is left untouched.

    :param model: ONNX model
    :param opset_version: Opset to fold under (default: the model's own)
    :param keep_initializers_as_inputs: List initializers as graph inputs
        (default: keep the source model's convention)
    :return: Tuple of (folded model, statistics dictionary)
    """
    new_model = ModelProto()
    new_model.CopyFrom(model)

    if opset_version is None:
        opset_version = get_opset_version(model)
    if keep_initializers_as_inputs is None:
        keep_initializers_as_inputs = _initializers_listed_as_inputs(model.graph)

    block, params = import_onnx(model.graph)
    original_names = set(params)
    stats = {
        "nodes_before": len(model.graph.node),
        "nodes_after": len(model.graph.node),
        "params_before": len(params),
        "params_after": len(params),
        "new_params": 0,
    }

    if not constant_fold(block, params, opset_version):
        return new_model, stats

    graph = export_onnx(
        block,
        params,
        name=model.graph.name,
        keep_initializers_as_inputs=keep_initializers_as_inputs,
        output_infos=list(model.graph.output),
    )
    defined = _defined_names(graph)
    graph.value_info.extend(info for info in model.graph.value_info if info.name in defined)
    graph.doc_string = model.graph.doc_string
    new_model.graph.CopyFrom(graph)

    stats["nodes_after"] = len(graph.node)
    stats["params_after"] = len(params)
    stats["new_params"] = len(set(params) - original_names)
    return new_model, stats


def fold_model(
    model: ModelProto,
    opset_version: int | None = None,
    keep_initializers_as_inputs: bool | None = None,
) -> ModelProto:
    """Fold constant subgraphs of a model.

    :param model: ONNX model
    :param opset_version: Opset to fold under (default: the model's own)
    :param keep_initializers_as_inputs: List initializers as graph inputs
    :return: Folded copy of the model
    """
    new_model, _ = fold_model_with_stats(model, opset_version, keep_initializers_as_inputs)
    return new_model
