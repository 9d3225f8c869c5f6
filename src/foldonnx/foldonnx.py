"""FoldONNX: constant folding for ONNX models."""

__docformat__ = "restructuredtext"
__all__ = ["FoldONNX"]

import time
from pathlib import Path

import onnx

from foldonnx.configs import FoldConfig, ValidationConfig
from foldonnx.constant_fold import fold_model_with_stats


class FoldONNX:
    """Load, fold, save and validate ONNX models.

    Folding evaluates every node whose inputs are all initializers or tensor
    Constant nodes and replaces it with a new initializer. Only opsets 9 and
    10 are folded; other opsets pass through unchanged with a warning.
    """

    def fold(
        self,
        onnx_path: str,
        target_path: str | None = None,
        config: FoldConfig | None = None,
        validation: ValidationConfig | None = None,
    ) -> dict | None:
        """Fold constants of an ONNX model file.

        The pipeline:
        1. Load and check the model, optionally converting its opset
        2. Fold constant subgraphs into initializers
        3. Clear docstrings and mark the producer as configured, then save
        4. Optionally validate outputs against the original

        :param onnx_path: Path to input ONNX model
        :param target_path: Path to save folded model (default: {input}_folded.onnx)
        :param config: Folding configuration (default: FoldConfig())
        :param validation: Validation configuration (default: ValidationConfig())
        :return: Folding report if validation.validate_outputs=True, else None
        """
        config = config or FoldConfig()
        validation = validation or ValidationConfig()

        model = self.preprocess(
            onnx_path,
            target_opset=config.target_opset,
            check_model=config.check_model,
        )

        start_time = time.perf_counter()
        new_model, stats = fold_model_with_stats(
            model,
            opset_version=config.opset_version,
            keep_initializers_as_inputs=config.keep_initializers_as_inputs,
        )
        folding_time = time.perf_counter() - start_time

        from foldonnx.preprocess import FOLDONNX_VERSION, cleanup_model

        new_model = cleanup_model(
            new_model,
            clear_docs=config.clear_docstrings,
            mark_producer=config.mark_producer,
            foldonnx_version=FOLDONNX_VERSION,
        )

        if target_path is None:
            target_path = onnx_path.replace(".onnx", "_folded.onnx")
        target_path_obj = Path(target_path)
        target_path_obj.parent.mkdir(parents=True, exist_ok=True)
        onnx.save(new_model, str(target_path_obj))

        if not validation.validate_outputs:
            return None

        # Compare against the preprocessed model so opset conversion is not blamed on folding
        validation_result = self.validate_outputs(model, new_model, validation)
        if not validation_result["all_match"]:
            raise ValueError(
                f"Validation failed: "
                f"{validation_result['failed']}/{validation_result['num_tests']} tests failed, "
                f"max_diff={validation_result['max_diff']:.2e}"
            )

        return {
            **stats,
            "folding_time": folding_time,
            "validation": validation_result,
            "output_path": target_path,
        }

    def preprocess(
        self,
        onnx_path: str,
        target_opset: int | None = None,
        check_model: bool = True,
        clear_docstrings: bool = False,
    ) -> onnx.ModelProto:
        """Load and preprocess ONNX model.

        :param onnx_path: Path to ONNX model
        :param target_opset: Target opset version (None = keep original)
        :param check_model: Validate with the ONNX checker
        :param clear_docstrings: Clear node docstrings
        :return: Preprocessed model
        """
        from foldonnx.preprocess import load_and_preprocess

        return load_and_preprocess(
            onnx_path,
            target_opset=target_opset,
            check_model=check_model,
            clear_docstrings=clear_docstrings,
        )

    def validate(self, onnx_path: str) -> dict:
        """Validate ONNX model correctness.

        Runs the ONNX checker, one ONNX Runtime inference and graph checks for
        broken connections and orphan initializers.

        :param onnx_path: Path to ONNX model
        :return: Validation report
        """
        model = self.preprocess(onnx_path, check_model=False)

        from foldonnx.model_validate import validate_model

        return validate_model(model)

    def validate_outputs(
        self,
        original: str | onnx.ModelProto,
        folded: str | onnx.ModelProto,
        validation: ValidationConfig | None = None,
    ) -> dict:
        """Compare outputs of two ONNX models numerically.

        :param original: Original model or its path
        :param folded: Folded model or its path
        :param validation: Validation configuration
        :return: Validation report
        """
        validation = validation or ValidationConfig()

        from foldonnx.model_validate import compare_model_outputs

        return compare_model_outputs(
            original,
            folded,
            input_bounds=validation.input_bounds,
            test_data_path=validation.test_data_path,
            num_samples=validation.num_samples,
            rtol=validation.rtol,
            atol=validation.atol,
        )
