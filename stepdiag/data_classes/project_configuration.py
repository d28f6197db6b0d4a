import os
from dataclasses import dataclass
from pathlib import Path

from beartype.typing import Any, Dict, List
from serde import serialize, deserialize, field, from_dict

from stepdiag.settings import DEFAULT_FEATURES, DEFAULT_STEP_DEFINITIONS

LIST_FIELDS = ("features", "exclude_features", "step_definitions", "stub_modules")


@serialize
@deserialize
@dataclass
class ProjectConfiguration:
    """Where feature files and their step definitions live"""

    project_root: str = field(default_factory=os.getcwd)
    features: List[str] = field(default_factory=lambda: list(DEFAULT_FEATURES))
    exclude_features: List[str] = field(default_factory=list)
    step_definitions: List[str] = field(default_factory=lambda: list(DEFAULT_STEP_DEFINITIONS))
    stub_modules: List[str] = field(default_factory=list)

    @property
    def root(self) -> Path:
        return Path(self.project_root).resolve()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectConfiguration":
        """Build a configuration from config file or CLI values, a plain string counts as a one item list"""
        data = {key: value for key, value in data.items() if key in cls.__dataclass_fields__ and value is not None}
        for key in LIST_FIELDS:
            if isinstance(data.get(key), str):
                data[key] = [data[key]]
            elif key in data:
                data[key] = list(data[key])
        if "project_root" in data:
            data["project_root"] = str(data["project_root"])
        return from_dict(cls, data)
