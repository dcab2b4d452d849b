"""
JSON-based project configuration for block_drafting.

Configuration hierarchy (later overrides earlier):
1. Built-in defaults (dataclasses below)
2. .drafting.json found next to the drawing, in the CWD or in the home dir
3. Explicit config file path via CLI (--config)
4. CLI arguments

Example .drafting.json:
{
    "array": {
        "default_count": 5,
        "scale": 1.0,
        "align_with_path": true,
        "layer": "FIXTURES"
    },
    "labels": {
        "prefix": "BLK",
        "text_height": 10.0
    },
    "measure": {
        "precision": 2
    },
    "output": {
        "suffix": "_out"
    }
}
"""

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".drafting.json"


@dataclass
class ArrayConfig:
    """Defaults for arraying blocks along a path."""
    default_count: int = 5
    scale: float = 1.0
    align_with_path: bool = True
    layer: Optional[str] = None  # None = layer "0"


@dataclass
class LabelConfig:
    """Defaults for stamping labels above block references."""
    prefix: str = "BLK"
    text_height: float = 10.0
    offset_factor: float = 1.5  # label sits offset_factor * text_height above the insert
    color: int = 3  # ACI green
    text_style: str = "Standard"


@dataclass
class MeasureConfig:
    """Line measuring output."""
    precision: int = 2


@dataclass
class OutputConfig:
    """Where modified drawings are written."""
    suffix: str = ""  # "" = overwrite the input drawing


@dataclass
class ProjectConfig:
    """Complete project configuration."""
    array: ArrayConfig = field(default_factory=ArrayConfig)
    labels: LabelConfig = field(default_factory=LabelConfig)
    measure: MeasureConfig = field(default_factory=MeasureConfig)
    output: OutputConfig = field(default_factory=OutputConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def save(self, path: Union[str, Path]) -> None:
        """Save configuration to a JSON file."""
        path = Path(path)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(self.to_json())
        logger.info("Configuration saved to %s", path)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ProjectConfig':
        """Build a configuration from a dictionary.

        Unknown sections and keys are ignored, so comments such as
        ``"_comment"`` can live in the file.
        """
        config = cls()
        for section_name in ('array', 'labels', 'measure', 'output'):
            section = getattr(config, section_name)
            for key, value in data.get(section_name, {}).items():
                if hasattr(section, key):
                    setattr(section, key, value)
        return config

    @classmethod
    def from_json(cls, json_str: str) -> 'ProjectConfig':
        return cls.from_dict(json.loads(json_str))

    @classmethod
    def load(cls, path: Union[str, Path]) -> 'ProjectConfig':
        """Load configuration from a JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        logger.info("Configuration loaded from %s", path)
        return cls.from_dict(data)


def find_config_file(
    drawing_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> Optional[Path]:
    """Find the configuration file.

    Search order:
    1. Explicit config path (if provided and existing)
    2. .drafting.json in the drawing's directory
    3. .drafting.json in the current working directory
    4. ~/.drafting.json

    Returns:
        Path to config file if found, None otherwise
    """
    if explicit_config:
        explicit = Path(explicit_config)
        if explicit.exists():
            return explicit
        logger.warning("Explicit config not found: %s", explicit)

    if drawing_path:
        drawing_config = Path(drawing_path).parent / CONFIG_FILENAME
        if drawing_config.exists():
            return drawing_config

    cwd_config = Path.cwd() / CONFIG_FILENAME
    if cwd_config.exists():
        return cwd_config

    home_config = Path.home() / CONFIG_FILENAME
    if home_config.exists():
        return home_config

    return None


def load_config(
    drawing_path: Optional[Union[str, Path]] = None,
    explicit_config: Optional[Union[str, Path]] = None,
) -> ProjectConfig:
    """Load configuration, falling back to defaults when none is found or it is broken."""
    config_path = find_config_file(drawing_path, explicit_config)

    if config_path:
        try:
            return ProjectConfig.load(config_path)
        except (json.JSONDecodeError, IOError) as e:
            logger.error("Failed to load config %s: %s", config_path, e)

    return ProjectConfig()


def output_path_for(drawing_path: Union[str, Path], config: ProjectConfig) -> Path:
    """Output path for a modified drawing: ``site.dxf`` -> ``site<suffix>.dxf``."""
    drawing_path = Path(drawing_path)
    if not config.output.suffix:
        return drawing_path
    return drawing_path.with_name(
        f"{drawing_path.stem}{config.output.suffix}{drawing_path.suffix}"
    )


def create_sample_config(path: Union[str, Path] = CONFIG_FILENAME) -> Path:
    """Write a commented sample configuration file."""
    defaults = ProjectConfig().to_dict()
    sample = {
        "_comment": "block_drafting configuration",
        "_version": "1.0",
        "array": {"_comment": "Arraying blocks along a line or polyline", **defaults['array']},
        "labels": {"_comment": "Labels stamped above block references", **defaults['labels']},
        "measure": {"_comment": "Line measuring", **defaults['measure']},
        "output": {"_comment": "Empty suffix overwrites the input drawing", **defaults['output']},
    }

    path = Path(path)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(sample, f, indent=2, ensure_ascii=False)

    logger.info("Sample configuration created: %s", path)
    return path
