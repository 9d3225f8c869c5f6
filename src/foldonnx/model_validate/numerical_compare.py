"""Numerical equivalence between a model and its folded version."""

__docformat__ = "restructuredtext"
__all__ = [
    "compare_model_outputs",
    "generate_inputs_from_bounds",
    "load_test_inputs",
    "run_onnx_inference",
]

import warnings

import numpy as np
import onnx
import onnxruntime as ort
from onnx import ModelProto

from foldonnx.utils import generate_random_inputs, get_runtime_inputs

Inputs = dict[str, np.ndarray]


def _as_model(model: str | ModelProto) -> ModelProto:
    return onnx.load(model) if isinstance(model, str) else model


def _static_shape(info: onnx.ValueInfoProto) -> tuple[int, ...]:
    return tuple(
        d.dim_value if d.HasField("dim_value") else 1 for d in info.type.tensor_type.shape.dim
    )


def generate_inputs_from_bounds(
    model: ModelProto,
    input_bounds: tuple[list[float], list[float]],
    num_samples: int = 5,
) -> list[Inputs]:
    """Sample the first runtime input uniformly between bounds.

    Bounds broadcast against the input shape, so a single lower/upper value
    bounds every element. Other runtime inputs are drawn at random.

    :param model: Model whose signature is sampled
    :param input_bounds: Tuple of (lower_bounds, upper_bounds) lists
    :param num_samples: Number of samples
    :return: Samples keyed by graph input name
    """
    lower_bounds, upper_bounds = input_bounds
    if len(lower_bounds) != len(upper_bounds):
        raise ValueError("Lower and upper bounds must have same length")

    first_input = get_runtime_inputs(model)[0]
    shape = _static_shape(first_input)
    rng = np.random.default_rng()

    samples = generate_random_inputs(model, num_samples)
    for sample in samples:
        sample[first_input.name] = rng.uniform(lower_bounds, upper_bounds, size=shape).astype(
            np.float32
        )
    return samples


def load_test_inputs(
    model: ModelProto, test_data_path: str, num_samples: int
) -> list[Inputs] | None:
    """Load stacked samples from ``.npy`` or ``.npz``.

    A ``.npy`` file feeds the first runtime input. A ``.npz`` file maps graph
    input names to stacked samples. A failed load warns and returns None.

    :param model: Model whose input names are used
    :param test_data_path: Path to the data file
    :param num_samples: Maximum number of samples
    :return: Samples keyed by graph input name, or None
    """
    input_names = [info.name for info in get_runtime_inputs(model)]
    try:
        if test_data_path.endswith(".npy"):
            stacked = {input_names[0]: np.load(test_data_path)}
        elif test_data_path.endswith(".npz"):
            with np.load(test_data_path) as data:
                stacked = {name: data[name] for name in input_names}
        else:
            raise ValueError(f"Unsupported test data format: {test_data_path}")
    except (OSError, ValueError, IndexError, KeyError) as error:
        warnings.warn(f"Failed to load test data: {error}", UserWarning, stacklevel=2)
        return None

    count = min([num_samples, *(len(array) for array in stacked.values())])
    return [{name: array[i] for name, array in stacked.items()} for i in range(count)]


def run_onnx_inference(model: str | ModelProto, inputs: Inputs) -> Inputs:
    """Run a model on the CPU provider.

    :param model: Model or path to it
    :param inputs: Inputs keyed by graph input name
    :return: Outputs keyed by graph output name
    """
    source = model if isinstance(model, str) else model.SerializeToString()
    session = ort.InferenceSession(source, providers=["CPUExecutionProvider"])
    output_names = [out.name for out in session.get_outputs()]
    feed = {inp.name: inputs[inp.name] for inp in session.get_inputs()}
    return dict(zip(output_names, session.run(output_names, feed), strict=True))


def _compare_outputs(
    i: int,
    expected: Inputs,
    actual: Inputs,
    rtol: float,
    atol: float,
) -> tuple[bool, float, list[str]]:
    """Compare one sample's outputs by name.

    :return: Tuple of (match, max_diff, mismatches)
    """
    match = True
    max_diff = 0.0
    mismatches = []

    for name, want in expected.items():
        got = actual.get(name)
        if got is None:
            match = False
            mismatches.append(f"Test {i}: Output {name} missing from folded model")
        elif want.shape != got.shape or want.dtype != got.dtype:
            match = False
            mismatches.append(
                f"Test {i}: Output {name} is {want.dtype}{list(want.shape)} "
                f"vs {got.dtype}{list(got.shape)}"
            )
        elif not np.allclose(want, got, rtol=rtol, atol=atol):
            match = False
            diff = float(np.max(np.abs(want.astype(np.float64) - got.astype(np.float64))))
            max_diff = max(max_diff, diff)
            mismatches.append(f"Test {i}: Output {name} differs (max_diff={diff:.2e})")

    return match, max_diff, mismatches


def compare_model_outputs(
    original: str | ModelProto,
    folded: str | ModelProto,
    input_bounds: tuple[list[float], list[float]] | None = None,
    test_inputs: list[Inputs] | None = None,
    test_data_path: str | None = None,
    num_samples: int = 5,
    rtol: float = 1e-5,
    atol: float = 1e-6,
) -> dict:
    """Check that folding preserved the model outputs.

    Folding keeps graph input and output names, so both models are fed the
    same inputs and outputs are matched by name. Inputs come from
    ``test_inputs``, else ``test_data_path``, else ``input_bounds``, else
    random samples of the original's signature.

    :param original: Model before folding, or its path
    :param folded: Model after folding, or its path
    :param input_bounds: Bounds for the first runtime input
    :param test_inputs: Pre-built samples
    :param test_data_path: ``.npy``/``.npz`` samples
    :param num_samples: Number of samples to generate or load
    :param rtol: Relative tolerance
    :param atol: Absolute tolerance
    :return: Report with ``all_match``, ``num_tests``, ``passed``, ``failed``,
        ``max_diff`` and ``mismatches``
    """
    if test_inputs is None:
        original_model = _as_model(original)
        if test_data_path is not None:
            test_inputs = load_test_inputs(original_model, test_data_path, num_samples)
        if test_inputs is None and input_bounds is not None:
            test_inputs = generate_inputs_from_bounds(original_model, input_bounds, num_samples)
        if test_inputs is None:
            test_inputs = generate_random_inputs(original_model, num_samples)

    passed = 0
    max_diff = 0.0
    mismatches: list[str] = []
    for i, inputs in enumerate(test_inputs):
        match, sample_diff, sample_mismatches = _compare_outputs(
            i, run_onnx_inference(original, inputs), run_onnx_inference(folded, inputs), rtol, atol
        )
        if match:
            passed += 1
        max_diff = max(max_diff, sample_diff)
        mismatches.extend(sample_mismatches)

    return {
        "all_match": passed == len(test_inputs),
        "num_tests": len(test_inputs),
        "passed": passed,
        "failed": len(test_inputs) - passed,
        "max_diff": max_diff,
        "mismatches": mismatches,
    }
