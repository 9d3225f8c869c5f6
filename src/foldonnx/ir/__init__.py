"""Graph IR consumed by the constant folding pass."""

__docformat__ = "restructuredtext"
__all__ = [
    "CAPTURE_KIND",
    "PARAM_KIND",
    "RETURN_KIND",
    "Block",
    "Node",
    "Use",
    "Value",
    "export_onnx",
    "import_onnx",
]

from foldonnx.ir._convert import export_onnx, import_onnx
from foldonnx.ir._graph import CAPTURE_KIND, PARAM_KIND, RETURN_KIND, Block, Node, Use, Value
