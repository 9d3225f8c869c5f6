"""Configuration dataclasses for FoldONNX."""

__docformat__ = "restructuredtext"
__all__ = ["FoldConfig", "ValidationConfig"]

from dataclasses import dataclass


@dataclass(frozen=True)
class FoldConfig:
    """Immutable constant folding configuration.

    Folding itself has no tunables beyond the opset; the remaining flags
    control how the model is loaded and written back.
    """

    # Opset to fold under (None = read from the model)
    opset_version: int | None = None

    # Preprocessing
    target_opset: int | None = None
    check_model: bool = True
    clear_docstrings: bool = False

    # Export
    keep_initializers_as_inputs: bool | None = None
    mark_producer: bool = True


@dataclass(frozen=True)
class ValidationConfig:
    """Immutable validation configuration.

    Controls numerical output validation between original and folded models.
    """

    validate_outputs: bool = False
    input_bounds: tuple[list[float], list[float]] | None = None
    test_data_path: str | None = None
    num_samples: int = 5
    rtol: float = 1e-5
    atol: float = 1e-6
