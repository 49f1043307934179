"""
Input/Output utilities for skeletons, synapse tables and classification results.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import pandas as pd

from .core import SkeletonNode, Tree
from .exceptions import SWCParseError
from .synapses import Synapse, SynapseSide

logger = logging.getLogger(__name__)

SYNAPSE_COLUMNS = ("connector_id", "node_id", "prepost")
COLUMN_ALIASES = {
    "treenode_id": "node_id",
    "treenode": "node_id",
    "direction": "prepost",
    "relation": "prepost",
    "n_partners": "partners",
}

# SWC type ids written for each compartment label; 7 is the first custom type.
COMPARTMENT_SWC_TYPES = {
    "axon": 2,
    "dendrite": 3,
    "primary dendrite": 4,
    "primary neurite": 7,
    "null": 0,
}


class SWCParser:
    """Parse SWC skeleton files."""

    def __init__(self, filepath: Union[str, Path], strict: bool = False):
        self.filepath = Path(filepath)
        self.strict = strict
        self.header_lines: List[str] = []
        self.metadata: Dict[str, str] = {}

    def parse(self) -> Tuple[List[SkeletonNode], Dict[str, str]]:
        """
        Parse the SWC file and return nodes and metadata.

        Returns:
            Tuple of (nodes, metadata)
        """
        nodes = []

        with open(self.filepath, 'r') as f:
            for line_num, line in enumerate(f, 1):
                line = line.strip()

                if not line:
                    continue

                if line.startswith('#'):
                    self.header_lines.append(line)
                    self._parse_header_line(line)
                    continue

                parts = line.split()
                try:
                    if len(parts) != 7:
                        raise ValueError(f"expected 7 columns, found {len(parts)}")
                    nodes.append(SkeletonNode(
                        index=int(parts[0]),
                        x=float(parts[2]),
                        y=float(parts[3]),
                        z=float(parts[4]),
                        radius=float(parts[5]),
                        parent=int(parts[6]),
                    ))
                except ValueError as e:
                    if self.strict:
                        raise SWCParseError(f"{self.filepath}:{line_num}: {e}") from e
                    logger.warning(f"Skipping invalid line {line_num} of {self.filepath.name}: {e}")

        return nodes, self.metadata

    def _parse_header_line(self, line: str):
        """Parse metadata from header line."""
        if '=' in line:
            key, value = line[1:].split('=', 1)
            self.metadata[key.strip()] = value.strip()
        else:
            comment = line[1:].strip()
            if comment:
                self.metadata[f'comment_{len(self.header_lines)}'] = comment


def load_swc(filepath: Union[str, Path], strict: bool = False) -> Tree:
    """
    Load a skeleton tree from an SWC file.

    Args:
        filepath: Path to SWC file
        strict: Raise on malformed lines instead of skipping them

    Returns:
        Validated Tree

    Raises:
        SWCParseError: If the file holds no valid nodes
        MalformedTreeError: If the nodes do not form a single rooted tree
    """
    parser = SWCParser(filepath, strict=strict)
    nodes, metadata = parser.parse()

    if not nodes:
        raise SWCParseError(f"No valid nodes found in {filepath}")

    metadata.setdefault('source', str(filepath))
    return Tree(nodes, metadata)


def save_swc(tree: Tree, filepath: Union[str, Path], labels: Optional[Dict[int, int]] = None) -> None:
    """
    Save a tree to an SWC file.

    Args:
        tree: Tree to save
        filepath: Output file path
        labels: Optional SWC type id per node (0 where missing)
    """
    filepath = Path(filepath)
    labels = labels or {}

    with open(filepath, 'w') as f:
        for key, value in tree.metadata.items():
            if key.startswith('comment_'):
                f.write(f"# {value}\n")
            else:
                f.write(f"# {key} = {value}\n")

        for node in sorted(tree.nodes.values(), key=lambda n: n.index):
            f.write(f"{node.index} {labels.get(node.index, 0)} {node.x:.6f} {node.y:.6f} "
                    f"{node.z:.6f} {node.radius:.6f} {node.parent}\n")


def load_synapses(filepath: Union[str, Path]) -> List[Synapse]:
    """
    Load synapses from a CSV table.

    Required columns are ``connector_id``, ``node_id`` and ``prepost``
    (1 = input, 0 = output). Optional ``partners`` holds the number of
    downstream partners of an output connector; optional ``x``/``y``/``z``
    hold the connector position.
    """
    df = pd.read_csv(filepath)
    df = df.rename(columns={c: COLUMN_ALIASES.get(c.strip().lower(), c.strip().lower()) for c in df.columns})

    missing = [c for c in SYNAPSE_COLUMNS if c not in df.columns]
    if missing:
        raise ValueError(f"{filepath} is missing synapse column(s): {', '.join(missing)}")

    has_partners = "partners" in df.columns
    has_position = all(c in df.columns for c in ("x", "y", "z"))

    synapses = []
    for row in df.itertuples(index=False):
        partners = getattr(row, "partners") if has_partners else 1
        position = (float(row.x), float(row.y), float(row.z)) if has_position else None
        synapses.append(Synapse(
            connector_id=int(row.connector_id),
            node_id=int(row.node_id),
            side=SynapseSide.from_flag(row.prepost),
            partners=1 if pd.isna(partners) else int(partners),
            position=position,
        ))

    logger.debug(f"Loaded {len(synapses)} synapses from {filepath}")
    return synapses


def save_results(results: List[Dict[str, Any]],
                 output_path: Union[str, Path],
                 format: str = "json",
                 include_failed: bool = True) -> None:
    """
    Save classification results to file.

    Args:
        results: List of result dictionaries
        output_path: Output file path
        format: Output format ('json' or 'csv')
        include_failed: Whether to include failed classifications
    """
    output_path = Path(output_path)

    if not include_failed:
        results = [r for r in results if r.get('analysis_successful', False)]

    if format.lower() == 'json':
        with open(output_path, 'w') as f:
            json.dump(results, f, indent=2)
    elif format.lower() == 'csv':
        rows = [{k: v for k, v in r.items() if k not in ('nodes', 'warnings')} for r in results]
        pd.DataFrame(rows).to_csv(output_path, index=False)
    else:
        raise ValueError(f"Unsupported format: {format}")

    logger.info(f"Saved {len(results)} results to {output_path}")


def save_labels(result, output_path: Union[str, Path]) -> None:
    """Write the per-node table of a ClassificationResult to CSV."""
    result.to_dataframe().to_csv(output_path)
    logger.info(f"Saved {len(result.records)} node labels to {output_path}")


def save_labeled_swc(result, output_path: Union[str, Path]) -> None:
    """Write the classified skeleton as SWC, compartments encoded as type ids."""
    labels = {idx: COMPARTMENT_SWC_TYPES[label] for idx, label in result.labels().items()}
    save_swc(result.tree, output_path, labels=labels)
