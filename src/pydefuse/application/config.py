"""Configuration for an analysis session."""

import json
import logging
from dataclasses import dataclass, field
from importlib import resources
from pathlib import Path
from typing import Any, Dict, List, Optional

from .errors import SpecLoadError

LOG = logging.getLogger(__name__)

BUNDLED_SPEC_MODULES = ("__builtins__", "random", "numpy", "pandas", "matplotlib")


def load_bundled_specs() -> Dict[str, Any]:
    """Load the side-effect specs shipped in ``pydefuse.symbols.data``."""
    specs = {}
    data = resources.files("pydefuse.symbols").joinpath("data")
    for module in BUNDLED_SPEC_MODULES:
        text = data.joinpath("%s.json" % module).read_text(encoding="utf-8")
        specs[module] = json.loads(text)
    return specs


def load_spec_file(path) -> Dict[str, Any]:
    """
    Read a user spec file.

    The file holds a JSON object mapping top-level module names to module
    specs, the same shape as the bundled data.

    Raises:
        SpecLoadError: If the file cannot be read or is not a JSON object
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise SpecLoadError("cannot load spec file %s: %s" % (path, e)) from e
    if not isinstance(data, dict):
        raise SpecLoadError("spec file %s must contain a JSON object" % path)
    return data


@dataclass
class AnalysisConfig:
    """
    Settings for one analysis session.

    Attributes:
        spec_files: Extra JSON spec files merged over the bundled specs
        bundled_specs: Whether to load the specs shipped with the package
        origin: Tag attached to source locations, usually the file name
        log_level: Logging level used by the command line front end
    """
    spec_files: List[Path] = field(default_factory=list)
    bundled_specs: bool = True
    origin: Optional[str] = None
    log_level: int = logging.WARNING

    def load_specs(self) -> Dict[str, Any]:
        specs = load_bundled_specs() if self.bundled_specs else {}
        for path in self.spec_files:
            extra = load_spec_file(path)
            LOG.debug("merging %d module specs from %s", len(extra), path)
            specs.update(extra)
        return specs

    @classmethod
    def from_args(cls, args) -> "AnalysisConfig":
        """Build a configuration from parsed command line arguments."""
        if getattr(args, "debug", False):
            level = logging.DEBUG
        elif getattr(args, "verbose", False):
            level = logging.INFO
        else:
            level = logging.WARNING
        return cls(
            spec_files=list(getattr(args, "specs", None) or []),
            bundled_specs=not getattr(args, "no_bundled_specs", False),
            origin=str(args.input) if getattr(args, "input", None) else None,
            log_level=level,
        )
