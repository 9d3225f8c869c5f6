"""Tests for model loading, opset conversion and cleanup."""

import onnx
import pytest
from onnx import helper

from foldonnx.preprocess import (
    FOLDONNX_VERSION,
    SUPPORTED_OPSETS,
    cleanup_model,
    convert_model_version,
    load_and_preprocess,
    mark_foldonnx_model,
)
from tests.test_units.conftest import create_minimal_onnx_model, create_tensor_value_info


def create_relu_model(opset=9, doc_string="ReLU activation"):
    """Create a single Relu model with a node docstring."""
    node = helper.make_node("Relu", ["X"], ["Y"], doc_string=doc_string)
    inputs = [create_tensor_value_info("X", "float32", [1, 3])]
    outputs = [create_tensor_value_info("Y", "float32", [1, 3])]
    return create_minimal_onnx_model([node], inputs, outputs, opset=opset)


class TestConvertModelVersion:
    """Test convert_model_version function."""

    def test_default_target_is_supported(self):
        """The default target is the newest foldable opset."""
        result = convert_model_version(create_relu_model(opset=9))
        assert result.opset_import[0].version == SUPPORTED_OPSETS[-1]

    def test_same_opset_is_unchanged(self):
        """No conversion happens when the opset already matches."""
        model = create_relu_model(opset=10)
        result = convert_model_version(model, target_opset=10)
        assert result is model

    def test_unsupported_target_warns(self):
        """Targets outside the foldable opsets warn."""
        with pytest.warns(UserWarning, match="not supported by constant folding"):
            convert_model_version(create_relu_model(opset=10), target_opset=13)

    def test_unsupported_target_warning_can_be_disabled(self, recwarn):
        """warn_on_diff=False silences the support warning."""
        convert_model_version(create_relu_model(opset=13), target_opset=13, warn_on_diff=False)
        assert not [w for w in recwarn if "constant folding" in str(w.message)]


class TestLoadAndPreprocess:
    """Test load_and_preprocess function."""

    def test_load(self, tmp_path):
        """A valid model loads unchanged."""
        path = tmp_path / "relu.onnx"
        onnx.save(create_relu_model(), str(path))

        model = load_and_preprocess(str(path))

        assert model.graph.node[0].op_type == "Relu"
        assert model.graph.node[0].doc_string == "ReLU activation"

    def test_convert_and_clear_docstrings(self, tmp_path):
        """Opset conversion and docstring clearing are applied."""
        path = tmp_path / "relu.onnx"
        onnx.save(create_relu_model(opset=9), str(path))

        model = load_and_preprocess(str(path), target_opset=10, clear_docstrings=True)

        assert model.opset_import[0].version == 10
        assert model.graph.node[0].doc_string == ""

    def test_invalid_model_raises(self, tmp_path):
        """Checker failures surface as ValueError."""
        node = helper.make_node("Relu", ["missing"], ["Y"])
        outputs = [create_tensor_value_info("Y", "float32", [1, 3])]
        path = tmp_path / "broken.onnx"
        onnx.save(create_minimal_onnx_model([node], [], outputs), str(path))

        with pytest.raises(ValueError, match="Invalid ONNX model"):
            load_and_preprocess(str(path))

    def test_skip_check(self, tmp_path):
        """check_model=False loads models the checker would reject."""
        node = helper.make_node("Relu", ["missing"], ["Y"])
        outputs = [create_tensor_value_info("Y", "float32", [1, 3])]
        path = tmp_path / "broken.onnx"
        onnx.save(create_minimal_onnx_model([node], [], outputs), str(path))

        model = load_and_preprocess(str(path), check_model=False)
        assert len(model.graph.node) == 1


class TestCleanup:
    """Test producer marking and cleanup."""

    def test_mark_model(self):
        """The producer name records the FoldONNX version."""
        model = mark_foldonnx_model(create_relu_model(), version=FOLDONNX_VERSION)
        assert model.producer_name == f"FoldONNX-{FOLDONNX_VERSION}"
        assert FOLDONNX_VERSION in model.doc_string

    def test_cleanup_model(self):
        """Cleanup clears docstrings and marks the producer."""
        model = cleanup_model(create_relu_model(), foldonnx_version="9.9.9")
        assert model.graph.node[0].doc_string == ""
        assert model.producer_name == "FoldONNX-9.9.9"

    def test_cleanup_model_without_marking(self):
        """Marking can be skipped."""
        model = create_relu_model()
        model.producer_name = "exporter"
        result = cleanup_model(model, clear_docs=False, mark_producer=False)
        assert result.producer_name == "exporter"
        assert result.graph.node[0].doc_string == "ReLU activation"
