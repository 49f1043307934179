"""YAML-based configuration for compartment classification runs."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Literal, Optional

import yaml

from .exceptions import ConfigError
from .flow import FlowMode
from .segregation import DEFAULT_INTERNEURON_THRESHOLD


@dataclass
class ClassifierConfig:
    mode: str = "average"
    polypre: bool = True
    primary_dendrite_threshold: Optional[float] = 0.9
    strict: bool = False
    interneuron_threshold: float = DEFAULT_INTERNEURON_THRESHOLD

    def __post_init__(self):
        try:
            self.mode = FlowMode.parse(self.mode).value
        except ValueError as e:
            raise ConfigError(str(e)) from e
        threshold = self.primary_dendrite_threshold
        if threshold is not None:
            threshold = float(threshold)
            if not 0.0 < threshold <= 1.0:
                raise ConfigError(
                    f"primary_dendrite_threshold must be in (0, 1], got {threshold}"
                )
            self.primary_dendrite_threshold = threshold

    @property
    def flow_mode(self) -> FlowMode:
        return FlowMode(self.mode)


@dataclass
class BatchConfig:
    workers: Optional[int] = None
    recursive: bool = False
    synapse_suffix: str = ".synapses.csv"
    output_format: Literal["json", "csv"] = "json"
    include_failed: bool = True


@dataclass
class AnalysisConfig:
    name: str = "flow-centrality"
    description: str = ""
    classifier: ClassifierConfig = field(default_factory=ClassifierConfig)
    batch: BatchConfig = field(default_factory=BatchConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> "AnalysisConfig":
        with open(path) as f:
            raw = yaml.safe_load(f) or {}
        return cls.from_dict(raw)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "AnalysisConfig":
        try:
            classifier = ClassifierConfig(**d.get("classifier", {}))
            batch = BatchConfig(**d.get("batch", {}))
        except TypeError as e:
            raise ConfigError(f"Unrecognised configuration option: {e}") from e

        return cls(
            name=d.get("name", d.get("analysis", {}).get("name", "flow-centrality")),
            description=d.get("description", d.get("analysis", {}).get("description", "")),
            classifier=classifier,
            batch=batch,
        )

    def to_yaml(self, path: Path) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "analysis": {"name": self.name, "description": self.description},
            "classifier": asdict(self.classifier),
            "batch": asdict(self.batch),
        }
