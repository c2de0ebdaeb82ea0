"""
Scoring configuration helpers.
Loads per-activity weights and the identity policy used by scoring.metrics.
"""
from typing import Callable, Dict, Optional
import os
import yaml

# filename used for weight YAML configuration
WEIGHTS_FILENAME = 'weights.yaml'

DEFAULT_WEIGHTS = {
    'commit': 0.1,
    'pull_request': 1.0,
    'review': 0.1,
}

IDENTITY_EXACT = 'exact'
IDENTITY_LOWER = 'lower'

_IDENTITY_POLICIES: Dict[str, Callable[[str], str]] = {
    IDENTITY_EXACT: lambda identity: identity,
    IDENTITY_LOWER: lambda identity: identity.lower(),
}

DEFAULT_IDENTITY_POLICY = IDENTITY_EXACT


def default_weights_path() -> str:
    return os.path.join(os.path.dirname(os.path.dirname(__file__)), 'config', WEIGHTS_FILENAME)


def _read_yaml(path: str) -> dict:
    with open(path, 'r', encoding='utf-8') as f:
        doc = yaml.safe_load(f) or {}
    if not isinstance(doc, dict):
        raise ValueError(f"Expected a mapping at the top of {path}")
    return doc


def _coerce_weights(data: dict, base: Dict[str, float]) -> Dict[str, float]:
    weights = {}
    for k in DEFAULT_WEIGHTS.keys():
        value = float(data.get(k, base.get(k, DEFAULT_WEIGHTS[k])))
        if value < 0:
            raise ValueError(f"Weight '{k}' must be non-negative, got {value}")
        weights[k] = value
    return weights


def load_weights(path: Optional[str] = None) -> Dict[str, float]:
    """
    Load activity weights from a YAML file if one exists, otherwise return defaults.
    Keys missing from the file keep their default value.
    """
    path = path or default_weights_path()
    if not os.path.exists(path):
        return DEFAULT_WEIGHTS.copy()
    return _coerce_weights(_read_yaml(path), DEFAULT_WEIGHTS)


def load_preset(preset_name: str, path: Optional[str] = None) -> Dict[str, float]:
    """
    Return the base weights with the named preset merged over them.

    Raises ValueError if the config file or the preset does not exist.

    Example:
        weights = load_preset('review_focused')
    """
    path = path or default_weights_path()
    if not os.path.exists(path):
        raise ValueError(f"Weights config file not found at: {path}")
    base = load_weights(path)
    presets = _read_yaml(path).get('presets') or {}
    if not isinstance(presets, dict) or preset_name not in presets:
        raise ValueError(f"Preset '{preset_name}' not found in {path}")
    return _coerce_weights(presets.get(preset_name) or {}, base)


def list_presets(path: Optional[str] = None) -> list:
    """Return the preset names defined in the weights YAML (or an empty list)."""
    path = path or default_weights_path()
    if not os.path.exists(path):
        return []
    presets = _read_yaml(path).get('presets') or {}
    return list(presets.keys()) if isinstance(presets, dict) else []


def load_identity_policy(path: Optional[str] = None) -> str:
    path = path or default_weights_path()
    if not os.path.exists(path):
        return DEFAULT_IDENTITY_POLICY
    policy = _read_yaml(path).get('identity_policy') or DEFAULT_IDENTITY_POLICY
    resolve_identity_policy(policy)
    return policy


def resolve_identity_policy(policy: Optional[str]) -> Callable[[str], str]:
    """Return the identity normalization function for a policy name ("exact" or "lower")."""
    name = (policy or DEFAULT_IDENTITY_POLICY).lower()
    if name not in _IDENTITY_POLICIES:
        raise ValueError(f"Unknown identity policy '{policy}'; expected one of {sorted(_IDENTITY_POLICIES)}")
    return _IDENTITY_POLICIES[name]
