"""Tests for the FoldONNX file API."""

import dataclasses

import numpy as np
import onnx
import pytest
from onnx import numpy_helper

from foldonnx import FoldConfig, FoldONNX, ValidationConfig, fold_model
from tests.test_units.conftest import get_nodes_by_type


@pytest.fixture
def slice9_path(tmp_path, slice9_model):
    path = tmp_path / "slice9.onnx"
    onnx.save(slice9_model, str(path))
    return str(path)


class TestFoldONNXFold:
    """Test FoldONNX.fold() method."""

    def test_fold_writes_default_path(self, slice9_path):
        """Without a target the result lands next to the input."""
        result = FoldONNX().fold(slice9_path)

        assert result is None
        folded = onnx.load(slice9_path.replace(".onnx", "_folded.onnx"))
        assert get_nodes_by_type(folded, "Slice") == []
        assert folded.producer_name.startswith("FoldONNX-")

    def test_fold_with_validation(self, slice9_path, tmp_path):
        """Validation returns the folding report."""
        target = tmp_path / "out" / "folded.onnx"

        result = FoldONNX().fold(
            slice9_path,
            str(target),
            validation=ValidationConfig(validate_outputs=True, num_samples=2),
        )

        assert target.exists()
        assert result["validation"]["all_match"]
        assert result["nodes_before"] == 2
        assert result["nodes_after"] == 1
        assert result["new_params"] == 1
        assert result["output_path"] == str(target)
        assert result["folding_time"] >= 0

    def test_fold_with_target_opset(self, slice9_path, tmp_path):
        """Converting to opset 10 first still folds the Slice."""
        target = tmp_path / "folded.onnx"

        result = FoldONNX().fold(
            slice9_path,
            str(target),
            config=FoldConfig(target_opset=10),
            validation=ValidationConfig(validate_outputs=True, num_samples=2),
        )

        assert result["validation"]["all_match"]
        assert get_nodes_by_type(onnx.load(str(target)), "Slice") == []

    def test_fold_without_marking(self, slice9_path, tmp_path):
        """The producer is left alone on request."""
        target = tmp_path / "folded.onnx"
        FoldONNX().fold(slice9_path, str(target), config=FoldConfig(mark_producer=False))
        assert not onnx.load(str(target)).producer_name.startswith("FoldONNX-")

    def test_fold_clears_docstrings_on_request(self, tmp_path, slice9_model):
        """Docstrings survive folding unless clearing is configured."""
        slice9_model.graph.node[1].doc_string = "bias add"
        path = tmp_path / "documented.onnx"
        onnx.save(slice9_model, str(path))
        kept, cleared = tmp_path / "kept.onnx", tmp_path / "cleared.onnx"

        FoldONNX().fold(str(path), str(kept))
        FoldONNX().fold(str(path), str(cleared), config=FoldConfig(clear_docstrings=True))

        assert get_nodes_by_type(onnx.load(str(kept)), "Add")[0].doc_string == "bias add"
        cleared_model = onnx.load(str(cleared))
        assert get_nodes_by_type(cleared_model, "Add")[0].doc_string == ""
        assert cleared_model.producer_name.startswith("FoldONNX-")

    def test_unsupported_opset_is_saved_unfolded(self, tmp_path, slice9_model):
        """Models outside opsets 9 and 10 are written back unchanged."""
        path = tmp_path / "slice9.onnx"
        onnx.save(slice9_model, str(path))
        target = tmp_path / "folded.onnx"

        with pytest.warns(UserWarning, match="Constant folding not applied"):
            FoldONNX().fold(str(path), str(target), config=FoldConfig(opset_version=11))

        assert len(get_nodes_by_type(onnx.load(str(target)), "Slice")) == 1


class TestFoldONNXHelpers:
    """Test preprocess and validate methods."""

    def test_preprocess(self, slice9_path):
        """preprocess loads and checks the model."""
        model = FoldONNX().preprocess(slice9_path)
        assert model.graph.node[0].op_type == "Slice"

    def test_validate(self, slice9_path):
        """validate reports a valid model."""
        report = FoldONNX().validate(slice9_path)
        assert report["is_valid"]

    def test_validate_outputs_detects_difference(self, tmp_path, slice9_model):
        """Models with different weights do not match."""
        original_path = tmp_path / "original.onnx"
        onnx.save(slice9_model, str(original_path))
        slice9_model.graph.initializer[0].CopyFrom(
            numpy_helper.from_array(np.zeros((4, 6), dtype=np.float32), "W")
        )
        changed_path = tmp_path / "changed.onnx"
        onnx.save(fold_model(slice9_model), str(changed_path))

        result = FoldONNX().validate_outputs(
            str(original_path), str(changed_path), ValidationConfig(num_samples=2)
        )

        assert not result["all_match"]
        assert result["failed"] == 2


class TestConfigs:
    """Test configuration dataclasses."""

    def test_defaults(self):
        """Defaults fold under the model's own opset."""
        config = FoldConfig()
        assert config.opset_version is None
        assert config.check_model
        assert not ValidationConfig().validate_outputs

    def test_frozen(self):
        """Configs are immutable."""
        with pytest.raises(dataclasses.FrozenInstanceError):
            FoldConfig().opset_version = 9
