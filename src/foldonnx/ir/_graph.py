"""Single-block SSA graph with use lists.

A Block owns an ordered list of nodes plus three bookkeeping nodes:

- ``param_node``: its outputs are the block parameter inputs (runtime inputs
  and constant weights alike).
- ``return_node``: its inputs are the block outputs, so a graph output counts
  as a use of the value it returns.
- ``capture_node``: its inputs are outer values referenced from nested
  subgraph attributes. It is never exported; it only keeps those values alive.

Every Value has exactly one producer and a list of uses. All mutation goes
through Node/Value methods so the use lists stay consistent.
"""

__docformat__ = "restructuredtext"
__all__ = ["CAPTURE_KIND", "PARAM_KIND", "RETURN_KIND", "Block", "Node", "Use", "Value"]

from typing import NamedTuple

import numpy as np
import onnx
from onnx import AttributeProto

PARAM_KIND = "Param"
RETURN_KIND = "Return"
CAPTURE_KIND = "Capture"
CONSTANT_KIND = "Constant"


class Use(NamedTuple):
    """One edge from a value to the input slot of a node."""

    user: "Node"
    offset: int


class Value:
    """A single output slot of a node."""

    def __init__(self, node: "Node", offset: int, unique: int) -> None:
        self.node = node
        self.offset = offset
        self.unique = unique
        self.debug_name = ""
        self.elem_type = 0
        self.shape: tuple[int | str | None, ...] | None = None
        self.uses: list[Use] = []

    def __repr__(self) -> str:
        return f"Value({self.debug_name or '%' + str(self.unique)}, producer={self.node.kind})"

    def has_uses(self) -> bool:
        return len(self.uses) > 0

    def replace_all_uses_with(self, new_value: "Value") -> None:
        """Redirect every consumer of this value to ``new_value``."""
        if new_value is self:
            return
        for use in list(self.uses):
            use.user.inputs[use.offset] = new_value
            new_value.uses.append(use)
        self.uses.clear()

    def infer_type_from(self, array: np.ndarray) -> None:
        """Take element type and shape from a concrete array."""
        self.elem_type = onnx.helper.np_dtype_to_tensor_dtype(array.dtype)
        self.shape = tuple(int(d) for d in array.shape)


class Node:
    """An operator instance.

    Attributes are kept as ``onnx.AttributeProto`` keyed by name, so their
    ONNX kind (``AttributeProto.INT``, ``INTS``, ``TENSOR``, ...) is available
    through :meth:`kind_of`.
    """

    def __init__(self, block: "Block", kind: str, domain: str = "", name: str = "") -> None:
        self.owning_block: Block | None = block
        self.kind = kind
        self.domain = domain
        self.name = name
        self.doc_string = ""
        self.inputs: list[Value] = []
        self.outputs: list[Value] = []
        self.attributes: dict[str, AttributeProto] = {}

    def __repr__(self) -> str:
        return f"Node({self.kind}, name={self.name!r})"

    # --- Edges ---

    def add_input(self, value: Value) -> Value:
        value.uses.append(Use(self, len(self.inputs)))
        self.inputs.append(value)
        return value

    def add_output(self) -> Value:
        if self.owning_block is None:
            raise RuntimeError(f"Cannot add an output to destroyed node {self}.")
        value = Value(self, len(self.outputs), self.owning_block.next_unique())
        self.outputs.append(value)
        return value

    def _drop_use(self, index: int) -> None:
        value = self.inputs[index]
        value.uses.remove(Use(self, index))

    def remove_input(self, index: int) -> None:
        """Remove input ``index`` and shift the offsets of later inputs."""
        self._drop_use(index)
        for later in range(index + 1, len(self.inputs)):
            value = self.inputs[later]
            pos = value.uses.index(Use(self, later))
            value.uses[pos] = Use(self, later - 1)
        del self.inputs[index]

    def remove_all_inputs(self) -> None:
        for index in range(len(self.inputs)):
            self._drop_use(index)
        self.inputs.clear()

    # --- Attributes ---

    def has_attribute(self, name: str) -> bool:
        return name in self.attributes

    def kind_of(self, name: str) -> int:
        return self.attributes[name].type

    def set_attribute(self, attr: AttributeProto) -> None:
        self.attributes[attr.name] = attr

    def i(self, name: str) -> int:
        return int(self.attributes[name].i)

    def f(self, name: str) -> float:
        return float(self.attributes[name].f)

    def s(self, name: str) -> str:
        return self.attributes[name].s.decode("utf-8")

    def ints(self, name: str) -> list[int]:
        return [int(x) for x in self.attributes[name].ints]

    def t(self, name: str) -> np.ndarray:
        return onnx.numpy_helper.to_array(self.attributes[name].t)

    def must_be_none(self) -> bool:
        """True for the sentinel Constant standing in for an omitted optional input."""
        return self.kind == CONSTANT_KIND and not self.attributes

    # --- Lifetime ---

    def destroy(self) -> None:
        """Disconnect and remove this node from its block.

        All outputs must already be unused.
        """
        if self.owning_block is None:
            raise RuntimeError(f"Node {self} was already destroyed.")
        for output in self.outputs:
            if output.has_uses():
                raise RuntimeError(
                    f"Cannot destroy {self}: output {output} still has "
                    f"{len(output.uses)} use(s)."
                )
        self.remove_all_inputs()
        self.owning_block.nodes.remove(self)
        self.owning_block.release_names(self.outputs)
        self.owning_block = None


class Block:
    """A straight-line region: parameter inputs, nodes, outputs."""

    def __init__(self) -> None:
        self._next_unique = 0
        self._names: set[str] = set()
        self.nodes: list[Node] = []
        self.output_names: list[str] = []
        self.captured_names: list[str] = []
        self.param_node = Node(self, PARAM_KIND)
        self.return_node = Node(self, RETURN_KIND)
        self.capture_node = Node(self, CAPTURE_KIND)
        self._none_node: Node | None = None

    def __repr__(self) -> str:
        return (
            f"Block({len(self.inputs)} inputs, {len(self.nodes)} nodes, "
            f"{len(self.outputs)} outputs)"
        )

    @property
    def inputs(self) -> list[Value]:
        return self.param_node.outputs

    @property
    def outputs(self) -> list[Value]:
        return self.return_node.inputs

    # --- Naming ---

    def next_unique(self) -> int:
        unique = self._next_unique
        self._next_unique += 1
        return unique

    def _is_taken(self, name: str) -> bool:
        # Output and capture names stay reserved after their producer is gone.
        return name in self._names or name in self.output_names or name in self.captured_names

    def fresh_name(self, base: str) -> str:
        """Return ``base`` or, when taken, the first free ``base.N``."""
        if not self._is_taken(base):
            return base
        suffix = 1
        while self._is_taken(f"{base}.{suffix}"):
            suffix += 1
        return f"{base}.{suffix}"

    def set_debug_name(self, value: Value, name: str) -> None:
        """Give ``value`` a unique name; an empty name leaves it anonymous."""
        if value.debug_name:
            self._names.discard(value.debug_name)
        if name:
            name = self.fresh_name(name)
            self._names.add(name)
        value.debug_name = name

    def release_names(self, values: list[Value]) -> None:
        for value in values:
            self._names.discard(value.debug_name)

    # --- Parameter inputs ---

    def add_input(self, name: str | None = None) -> Value:
        """Append a new parameter input.

        Without a name the input is named after its unique id.
        """
        value = self.param_node.add_output()
        self.set_debug_name(value, name if name else str(value.unique))
        return value

    def erase_input(self, index: int) -> None:
        value = self.inputs[index]
        if value.has_uses():
            raise RuntimeError(f"Cannot erase block input {value}: it still has uses.")
        self._names.discard(value.debug_name)
        del self.param_node.outputs[index]
        for offset, remaining in enumerate(self.param_node.outputs):
            remaining.offset = offset

    # --- Outputs ---

    def register_output(self, value: Value, name: str | None = None) -> int:
        self.return_node.add_input(value)
        self.output_names.append(name if name is not None else value.debug_name)
        return len(self.outputs) - 1

    def capture(self, value: Value) -> None:
        """Keep ``value`` alive under its current name for nested subgraphs."""
        if all(use.user is not self.capture_node for use in value.uses):
            self.capture_node.add_input(value)
            self.captured_names.append(value.debug_name)

    @property
    def captures(self) -> list[Value]:
        return self.capture_node.inputs

    # --- Nodes ---

    def create_node(
        self,
        kind: str,
        inputs: list[Value] | None = None,
        num_outputs: int = 1,
        domain: str = "",
        name: str = "",
    ) -> Node:
        """Create a node that is not yet part of the node list."""
        node = Node(self, kind, domain=domain, name=name)
        for value in inputs or []:
            node.add_input(value)
        for _ in range(num_outputs):
            node.add_output()
        return node

    def append_node(self, node: Node) -> Node:
        if node.owning_block is not self:
            raise RuntimeError(f"{node} belongs to a different block.")
        self.nodes.append(node)
        return node

    def none_value(self) -> Value:
        """Shared output of the none-sentinel Constant node."""
        if self._none_node is None or self._none_node.owning_block is None:
            self._none_node = self.create_node(CONSTANT_KIND)
            self.nodes.insert(0, self._none_node)
        return self._none_node.outputs[0]
