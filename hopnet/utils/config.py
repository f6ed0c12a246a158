from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple
import datetime as _dt
import re
import copy
import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = "configs/image_recall.yaml"

DEFAULTS: Dict[str, Any] = {
    "experiment": {
        "name": "image_recall",
        "seed": 42,
        "output_dir": None,
        "timestamp": True,
    },
    "data": {
        "datadir": None,
        "input": None,
        "output": "restored.png",
        "width": None,
        "height": None,
    },
    "network": {
        "method": "hebbian",
    },
    "recall": {
        "mode": "async",
        "maxiters": 100,
        "eqiters": None,
    },
    "noise": {
        "percent": 20,
        "pattern_index": 0,
    },
    "plots": {
        "save": True,
        "show": False,
    },
}

# ==== Dotted paths ====

def _get_dotted(cfg: Mapping[str, Any], dotted: str) -> Any:
    """ cfg["a"]["b"]["c"] for "a.b.c"; KeyError when any level is missing."""
    node: Any = cfg
    for part in dotted.split("."):
        if not isinstance(node, Mapping) or part not in node:
            raise KeyError(dotted)
        node = node[part]
    return node

def _set_dotted(tree: Dict[str, Any], keys: List[str], value: Any) -> None:
    node = tree
    for k in keys[:-1]:
        node = node.setdefault(k, {})
        if not isinstance(node, dict):
            raise ValueError(f"Override path conflicts with non-dict at {k!r}")
    node[keys[-1]] = value

# ==== Sources: defaults, YAML file, --set overrides ====

def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in {path}: {e}") from e
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Top-level YAML must be a mapping (dict). File: {path}")
    return data

def _parse_overrides(pairs: Iterable[str]) -> Dict[str, Any]:
    """ recall.maxiters=200 network.method=storkey → nested dict, values parsed as YAML."""
    tree: Dict[str, Any] = {}
    for raw in pairs or []:
        path, sep, text = raw.partition("=")
        keys = [k for k in path.strip().split(".") if k]
        if not sep or not keys:
            raise ValueError(f"Invalid override {raw!r}: expected a.b.c=value")
        try:
            value = yaml.safe_load(text.strip())
        except yaml.YAMLError:
            value = text.strip()
        _set_dotted(tree, keys, value)
    return tree

def _merge(into: Dict[str, Any], updates: Mapping[str, Any]) -> Dict[str, Any]:
    """ Merge `updates` into `into` in place, section by section."""
    for k, v in updates.items():
        if isinstance(v, Mapping) and isinstance(into.get(k), dict):
            _merge(into[k], v)
        else:
            into[k] = copy.deepcopy(v)
    return into

# ==== Resolution: ${a.b} placeholders, timestamped output dir ====
_PLACEHOLDER = re.compile(r"\$\{([^}]+)\}")

def _expand(node: Any, root: Mapping[str, Any]) -> Any:
    """ Replace ${a.b.c} in every string leaf; unknown paths are left untouched."""
    if isinstance(node, dict):
        return {k: _expand(v, root) for k, v in node.items()}
    if isinstance(node, (list, tuple)):
        return type(node)(_expand(v, root) for v in node)
    if not isinstance(node, str):
        return node

    def _value(m: re.Match[str]) -> str:
        try:
            return str(_get_dotted(root, m.group(1).strip()))
        except KeyError:
            return m.group(0)
    return _PLACEHOLDER.sub(_value, node)

def _resolve(cfg: Dict[str, Any]) -> Dict[str, Any]:
    exp = cfg.get("experiment") or {}
    out_dir = exp.get("output_dir")
    if isinstance(out_dir, str) and out_dir:
        out_dir = _expand(out_dir, cfg)
        if exp.get("timestamp", True):
            out_dir = str(Path(out_dir) / _dt.datetime.now().strftime("%Y%m%d-%H%M%S"))
        exp["output_dir"] = out_dir
    return _expand(cfg, cfg)

# ==== Public API ====

def load_config(config_path: Optional[str] = None, overrides: Iterable[str] | None = None) -> Dict[str, Any]:
    """
    Loads the experiment configuration.

    Args:
    - config_path: path to a YAML file (e.g., `configs/image_recall.yaml`);
      None uses the built-in DEFAULTS only.
    - overrides: list of strings in `a.b.c=value` notation. The value is parsed with YAML.

    Returns:
    - dict with the final configuration. Applies:
      - merge (DEFAULTS <- file <- overrides)
      - `YYYYMMDD-HHMMSS` timestamp appended to `experiment.output_dir`
        (if present and `experiment.timestamp` is true)
      - expansion of placeholders `${...}` (e.g., `${experiment.name}`)
    """
    overrides = list(overrides or [])
    merged = copy.deepcopy(DEFAULTS)
    if config_path is not None:
        _merge(merged, _read_yaml(Path(config_path).expanduser().resolve()))
    _merge(merged, _parse_overrides(overrides))

    logger.debug("loaded config from %s with %d override(s)", config_path, len(overrides))
    return _resolve(merged)

def parse_args(argv: Sequence[str], default_config: Optional[str] = DEFAULT_CONFIG_PATH) -> Tuple[Optional[str], List[str]]:
    """
    Read `--config=PATH` and repeated `--set=a.b=value` arguments.

    Returns the config path (the default when the file exists and no
    --config is given, else None) and the list of overrides.
    """
    config_path: Optional[str] = None
    overrides: List[str] = []
    for arg in argv:
        if arg.startswith("--config="):
            config_path = arg.split("=", 1)[1]
        elif arg.startswith("--set="):
            overrides.append(arg.split("=", 1)[1])
        else:
            raise ValueError(f"Unknown argument: {arg!r} (expected --config=PATH or --set=a.b=value)")

    if config_path is None and default_config and Path(default_config).exists():
        config_path = default_config
    return config_path, overrides
