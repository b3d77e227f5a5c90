"""
Node metadata for pipeline inspection.

Each graph node declares what it reads and writes on the state, which
stage transitions it performs, and which external capability it calls.
`describe_pipeline()` turns that into a JSON-friendly summary used by the
CLI and the health endpoint.

Usage:
    @dataclass
    class MyNode(BaseNode[MyState]):
        metadata: ClassVar[NodeMetadata] = NodeMetadata(
            inputs=["policy"],
            outputs=["mask"],
            stages=["mask_built"],
            services=["storage.upload"],
        )
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class NodeMetadata:
    """
    Attributes:
        inputs: State fields read by this node
        outputs: State fields written by this node
        stages: Generation stages entered by this node, in order
        services: Dependency methods called (e.g., "storage.upload")
        external: External capability called, if any (e.g., "instruction drafting")
    """

    inputs: List[str] = field(default_factory=list)
    outputs: List[str] = field(default_factory=list)
    stages: List[str] = field(default_factory=list)
    services: List[str] = field(default_factory=list)
    external: Optional[str] = None

    @property
    def calls_external(self) -> bool:
        return self.external is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "inputs": self.inputs,
            "outputs": self.outputs,
            "stages": self.stages,
            "services": self.services,
            "external": self.external,
        }


def get_node_metadata(node_class) -> Optional[NodeMetadata]:
    return getattr(node_class, "metadata", None)


def describe_pipeline(node_classes: List) -> Dict[str, Any]:
    """
    Summarize a pipeline's nodes.

    Returns:
        Dict with the ordered node list (name + metadata), the stages they
        cover, and the nodes that call external capabilities
    """
    nodes = []
    stages: List[str] = []
    external_nodes = []

    for node_class in node_classes:
        metadata = get_node_metadata(node_class)
        entry: Dict[str, Any] = {"name": node_class.__name__}
        if metadata:
            entry.update(metadata.to_dict())
            stages.extend(s for s in metadata.stages if s not in stages)
            if metadata.calls_external:
                external_nodes.append(node_class.__name__)
        nodes.append(entry)

    return {
        "nodes": nodes,
        "stages": stages,
        "external_nodes": external_nodes,
    }
