"""
Graph validation - check node/edge collections for integrity problems.

Used by the persistence codec to repair loaded documents, and by the API to
report on the open project.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from .models import Edge, Node

logger = logging.getLogger(__name__)


class IssueSeverity(str, Enum):
    """Severity levels for validation issues."""
    ERROR = "error"      # Breaks a graph invariant, repaired on load
    WARNING = "warning"  # Legal but probably unintended
    INFO = "info"        # Informational


@dataclass
class ValidationIssue:
    """A single validation issue found in a graph."""
    severity: IssueSeverity
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {
            "type": self.severity.value,
            "message": self.message
        }
        if self.node_id:
            result["node_id"] = self.node_id
        if self.edge_id:
            result["edge_id"] = self.edge_id
        return result


def find_issues(nodes: Iterable[Node], edges: Iterable[Edge]) -> list[ValidationIssue]:
    """
    Validate a graph and return a list of issues.

    Checks for:
    - Duplicate node ids - ERROR
    - Duplicate edge ids - ERROR
    - Edges referencing missing nodes - ERROR
    - Self-referencing edges - ERROR
    - More than one edge between the same pair of nodes - ERROR
    - Empty names - WARNING
    - Empty graph - INFO
    """
    nodes = list(nodes)
    edges = list(edges)
    issues: list[ValidationIssue] = []

    if not nodes:
        issues.append(ValidationIssue(
            severity=IssueSeverity.INFO,
            message="Graph has no nodes"
        ))

    node_ids: set[str] = set()
    for node in nodes:
        if node.id in node_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate node id: {node.id}",
                node_id=node.id
            ))
        node_ids.add(node.id)
        if not node.name.strip():
            issues.append(ValidationIssue(
                severity=IssueSeverity.WARNING,
                message="Node has an empty name",
                node_id=node.id
            ))

    edge_ids: set[str] = set()
    seen_pairs: set[frozenset[str]] = set()
    for edge in edges:
        if edge.id in edge_ids:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate edge id: {edge.id}",
                edge_id=edge.id
            ))
        edge_ids.add(edge.id)

        for endpoint in (edge.from_id, edge.to_id):
            if endpoint not in node_ids:
                issues.append(ValidationIssue(
                    severity=IssueSeverity.ERROR,
                    message=f"Edge references non-existent node: {endpoint}",
                    edge_id=edge.id
                ))

        if edge.from_id == edge.to_id:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message="Self-referencing edge (node points to itself)",
                edge_id=edge.id,
                node_id=edge.from_id
            ))
        elif edge.pair in seen_pairs:
            issues.append(ValidationIssue(
                severity=IssueSeverity.ERROR,
                message=f"Duplicate edge between {edge.from_id} and {edge.to_id}",
                edge_id=edge.id
            ))
        seen_pairs.add(edge.pair)

    return issues


def repair_graph(
    nodes: Iterable[Node], edges: Iterable[Edge]
) -> tuple[tuple[Node, ...], tuple[Edge, ...]]:
    """
    Drop everything that breaks a graph invariant.

    Keeps the first node for each id, then keeps only edges whose endpoints
    both exist, which are not self-loops, and which are the first edge for
    their id and for their unordered node pair. Order is preserved.
    """
    kept_nodes: list[Node] = []
    node_ids: set[str] = set()
    for node in nodes:
        if node.id in node_ids:
            logger.debug("Dropping duplicate node %s", node.id)
            continue
        node_ids.add(node.id)
        kept_nodes.append(node)

    kept_edges: list[Edge] = []
    edge_ids: set[str] = set()
    seen_pairs: set[frozenset[str]] = set()
    for edge in edges:
        if edge.from_id not in node_ids or edge.to_id not in node_ids:
            logger.debug("Dropping dangling edge %s (%s -> %s)", edge.id, edge.from_id, edge.to_id)
            continue
        if edge.from_id == edge.to_id or edge.pair in seen_pairs or edge.id in edge_ids:
            logger.debug("Dropping invalid edge %s", edge.id)
            continue
        edge_ids.add(edge.id)
        seen_pairs.add(edge.pair)
        kept_edges.append(edge)

    return tuple(kept_nodes), tuple(kept_edges)


def validation_summary(issues: list[ValidationIssue]) -> dict:
    """
    Create a summary of validation issues.

    Args:
        issues: List of validation issues

    Returns:
        Dictionary with counts by severity
    """
    errors = len([i for i in issues if i.severity == IssueSeverity.ERROR])
    return {
        "total": len(issues),
        "errors": errors,
        "warnings": len([i for i in issues if i.severity == IssueSeverity.WARNING]),
        "info": len([i for i in issues if i.severity == IssueSeverity.INFO]),
        "valid": errors == 0
    }
