"""Tests for folding whole ONNX models."""

import numpy as np
import onnx
import pytest
from onnx import helper

from foldonnx.constant_fold import fold_model, fold_model_with_stats, get_opset_version
from tests.test_units.conftest import (
    create_constant_node,
    create_minimal_onnx_model,
    create_tensor_value_info,
    get_initializer_by_name,
    get_nodes_by_type,
    run_onnx_model,
)


class TestGetOpsetVersion:
    """Test reading the default-domain opset."""

    def test_default_domain(self, slice9_model):
        """The empty domain carries the opset."""
        assert get_opset_version(slice9_model) == 9

    def test_no_default_domain(self, slice9_model):
        """Models without a default-domain import report 0."""
        del slice9_model.opset_import[:]
        slice9_model.opset_import.append(helper.make_opsetid("com.example", 1))
        assert get_opset_version(slice9_model) == 0


class TestFoldModel:
    """Test model-level folding."""

    def test_slice_model_matches_runtime(self, slice9_model):
        """The folded model computes the same outputs."""
        folded = fold_model(slice9_model)
        onnx.checker.check_model(folded)

        x = np.random.default_rng(0).standard_normal((4, 4)).astype(np.float32)
        expected = run_onnx_model(slice9_model, {"X": x})
        actual = run_onnx_model(folded, {"X": x})

        np.testing.assert_allclose(actual["Y"], expected["Y"])
        assert get_nodes_by_type(folded, "Slice") == []
        assert get_initializer_by_name(folded, "W") is None

    def test_concat_model_matches_runtime(self, concat_model):
        """Constant nodes disappear and outputs are unchanged."""
        folded = fold_model(concat_model)

        x = np.ones((4, 3), dtype=np.float32)
        np.testing.assert_allclose(
            run_onnx_model(folded, {"X": x})["Y"], run_onnx_model(concat_model, {"X": x})["Y"]
        )
        assert get_nodes_by_type(folded, "Constant") == []
        assert [node.op_type for node in folded.graph.node] == ["Add"]

    def test_folded_graph_output_keeps_name(self):
        """An output computed only from constants is still named Y."""
        nodes = [
            create_constant_node("C", np.arange(6).reshape(2, 3)),
            helper.make_node("Transpose", ["C"], ["Y"], perm=[1, 0]),
        ]
        outputs = [create_tensor_value_info("Y", "float32", [3, 2])]
        model = create_minimal_onnx_model(nodes, [], outputs)

        folded = fold_model(model)
        onnx.checker.check_model(folded)

        assert [out.name for out in folded.graph.output] == ["Y"]
        np.testing.assert_array_equal(
            run_onnx_model(folded, {})["Y"], np.arange(6, dtype=np.float32).reshape(2, 3).T
        )

    def test_input_model_untouched(self, slice9_model):
        """Folding works on a copy."""
        before = slice9_model.SerializeToString()
        fold_model(slice9_model)
        assert slice9_model.SerializeToString() == before

    def test_unsupported_opset_returns_copy(self, slice9_model):
        """Forcing an unsupported opset leaves the model as it was."""
        with pytest.warns(UserWarning, match="Constant folding not applied"):
            folded = fold_model(slice9_model, opset_version=11)
        assert folded == slice9_model
        assert folded is not slice9_model

    def test_keep_initializers_as_inputs(self, slice9_model):
        """Initializers can be listed as graph inputs."""
        folded = fold_model(slice9_model, keep_initializers_as_inputs=True)
        input_names = {inp.name for inp in folded.graph.input}
        assert {init.name for init in folded.graph.initializer} <= input_names


class TestFoldStats:
    """Test the statistics report."""

    def test_stats(self, concat_model):
        """Node and parameter counts before and after are reported."""
        _, stats = fold_model_with_stats(concat_model)
        assert stats == {
            "nodes_before": 4,
            "nodes_after": 1,
            "params_before": 0,
            "params_after": 1,
            "new_params": 1,
        }

    def test_stats_when_not_applied(self, slice9_model):
        """Counts are unchanged when folding is skipped."""
        with pytest.warns(UserWarning):
            _, stats = fold_model_with_stats(slice9_model, opset_version=12)
        assert stats["nodes_after"] == stats["nodes_before"]
        assert stats["new_params"] == 0
