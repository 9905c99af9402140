"""
Configuration for the flipper-length analysis.

Settings are plain dataclasses that can be written to and read from JSON,
so a run can be repeated with exactly the same priors and sampler settings.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Dict, Optional, Union

DEFAULT_DATASET = "penguins"
DEFAULT_OUTCOME = "flipper_length_mm"
DEFAULT_PREDICTOR = "sex"
DEFAULT_CODED_COLUMN = "sex_c"
SEX_LEVELS = ("male", "female")

# Priors used in the walkthrough, keyed by parameter name
DEFAULT_PRIORS = {
    "Intercept": "normal(500, 250)",
    "sigma": "normal(250, 125)",
    "b": "normal(0, 100)",
}


@dataclass
class FitSettings:
    """Sampler settings passed through to ``pymc.sample``."""

    chains: int = 4
    draws: int = 1000
    tune: int = 1000
    cores: Optional[int] = None
    target_accept: float = 0.8
    random_seed: Optional[int] = None

    def __post_init__(self):
        if self.chains < 1:
            raise ValueError(f"chains must be >= 1, got {self.chains}")
        if self.draws < 1:
            raise ValueError(f"draws must be >= 1, got {self.draws}")
        if self.tune < 0:
            raise ValueError(f"tune must be >= 0, got {self.tune}")
        if not 0 < self.target_accept < 1:
            raise ValueError(
                f"target_accept must be between 0 and 1, got {self.target_accept}"
            )

    def sample_kwargs(self) -> Dict:
        kwargs = {
            "chains": self.chains,
            "draws": self.draws,
            "tune": self.tune,
            "target_accept": self.target_accept,
            "random_seed": self.random_seed,
        }
        if self.cores is not None:
            kwargs["cores"] = self.cores
        return kwargs


@dataclass
class AnalysisConfig:
    """Everything needed to rerun the walkthrough end to end."""

    dataset: str = DEFAULT_DATASET
    source: Optional[str] = None
    outcome: str = DEFAULT_OUTCOME
    predictor: str = DEFAULT_PREDICTOR
    coded_column: str = DEFAULT_CODED_COLUMN
    levels: Optional[tuple] = SEX_LEVELS
    family: str = "gaussian"
    priors: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_PRIORS))
    fit: FitSettings = field(default_factory=FitSettings)
    check_stat: str = "mean"
    output_dir: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.fit, dict):
            known = {f.name for f in fields(FitSettings)}
            unknown = sorted(set(self.fit) - known)
            if unknown:
                raise ValueError(f"Unknown fit settings: {', '.join(unknown)}")
            self.fit = FitSettings(**self.fit)
        if self.levels is not None:
            self.levels = tuple(self.levels)
            if len(self.levels) != 2:
                raise ValueError(
                    f"levels must name exactly two categories, got {self.levels}"
                )

    @property
    def formula(self) -> str:
        return f"{self.outcome} ~ {self.coded_column}"

    @classmethod
    def from_dict(cls, values: Dict) -> "AnalysisConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(unknown)}")
        return cls(**values)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "AnalysisConfig":
        with open(path, "r") as f:
            values = json.load(f)
        if not isinstance(values, dict):
            raise ValueError(f"Configuration in {path} must be a JSON object")
        return cls.from_dict(values)

    def to_dict(self) -> Dict:
        values = asdict(self)
        if values["levels"] is not None:
            values["levels"] = list(values["levels"])
        return values

    def to_json(self, path: Union[str, Path]) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        return path
