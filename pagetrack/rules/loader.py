import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from pagetrack.rules.models import TrackingRules

COLLECTOR_URL_ENV = "PAGETRACK_COLLECTOR_URL"


def load_rules(path: Path) -> TrackingRules:
    """
    Load and validate the tracking rules file.
    Raises FileNotFoundError if file missing.
    Raises ValueError if YAML or schema invalid.
    """
    if not path.exists():
        raise FileNotFoundError(f"Rules file not found at: {path}")

    with open(path) as f:
        content = f.read()

    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML syntax in rules file: {e}") from e

    try:
        rules = TrackingRules.model_validate(data or {})
    except ValidationError as e:
        # Re-raise with a clear message for the caller/logs
        raise ValueError(f"Rules validation failed:\n{e}") from e

    return apply_env_overrides(rules)


def apply_env_overrides(rules: TrackingRules) -> TrackingRules:
    """Point the collector at PAGETRACK_COLLECTOR_URL when it is set."""
    base_url = os.environ.get(COLLECTOR_URL_ENV)
    if not base_url:
        return rules

    collector = rules.collector.model_copy(update={"base_url": base_url})
    return rules.model_copy(update={"collector": collector})
