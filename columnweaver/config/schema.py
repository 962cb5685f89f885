"""
ColumnWeaver v0.1.0

Configuration schema for ColumnWeaver.

Defines all available configuration parameters with defaults and validation.

Author: ColumnWeaver Development Team
License: Dual License (Academic/Commercial) - See LICENSE_ACADEMIC.md and LICENSE_COMMERCIAL.md
"""

import copy
import os
import re
from typing import Dict, Any, Optional, List
from pathlib import Path
import yaml


class ConfigValidationError(Exception):
    """Raised when a configuration file cannot be loaded."""
    pass


# Default configuration values
DEFAULT_CONFIG = {
    # ========================================================================
    # Input
    # ========================================================================
    'input': {
        'format': 'fasta',  # Any Bio.AlignIO format
    },

    # ========================================================================
    # Assembly
    # ========================================================================
    'assembly': {
        'min_overlap': 20,  # Shared base columns required for an edge
        'min_reads': 2,  # Support reads (incl. contained) per contig
        'min_coverage': 0.0,  # Mean depth per contig
        'min_length': 0,  # Consensus length per contig
        'sort_alignment': False,  # Reorder alignment rows by contig
    },

    # ========================================================================
    # Output
    # ========================================================================
    'output': {
        'contigs': 'contigs.fasta',
        'graph': 'overlap_graph.gml',  # null to skip
        'layout': 'read_layout.tab',  # null to skip; .tab/.tsv => tab-delimited
        'sorted_alignment': 'sorted_alignment.fasta',  # written if sort_alignment
        'logging': {
            'level': 'INFO',
            'log_file': 'columnweaver.log',  # null to log to console only
        },
    },

    # ========================================================================
    # Runtime
    # ========================================================================
    'runtime': {
        'show_progress': True,
    },
}

VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """
    Load configuration from file, falling back to defaults.

    `${VAR}` and `${VAR:-default}` references in string values are replaced
    from the environment.

    Args:
        config_file: Path to YAML config file (optional)

    Returns:
        Configuration dictionary

    Raises:
        FileNotFoundError: If config_file does not exist
        ConfigValidationError: If the file is not valid YAML
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_file:
        config_file = Path(config_file)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

        try:
            with open(config_file, 'r') as f:
                user_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"Invalid YAML in config file {config_file}: {e}")

        if user_config:
            if not isinstance(user_config, dict):
                raise ConfigValidationError(
                    f"Config file {config_file} must contain a mapping, got {type(user_config).__name__}"
                )
            # Deep merge user config into defaults
            config = _deep_merge(config, _substitute_env_vars(user_config))

    return config


def _deep_merge(base: Dict, override: Dict) -> Dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Override dictionary

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def _substitute_env_vars(config: Any) -> Any:
    """
    Recursively substitute environment variables in configuration.

    Supports:
    - ${VAR}: Replace with environment variable VAR
    - ${VAR:-default}: Replace with VAR, or 'default' if not set
    """
    if isinstance(config, dict):
        return {k: _substitute_env_vars(v) for k, v in config.items()}

    elif isinstance(config, list):
        return [_substitute_env_vars(item) for item in config]

    elif isinstance(config, str):
        pattern = r'\$\{([^}:]+)(?::-(.*?))?\}'

        def replace_var(match):
            return os.environ.get(match.group(1), match.group(2) or '')

        return re.sub(pattern, replace_var, config)

    return config


def apply_overrides(config: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply dotted-key overrides (e.g. 'assembly.min_overlap') on a copy of config.

    None values are ignored so unset CLI options keep the configured value.
    """
    result = copy.deepcopy(config)
    for key, value in overrides.items():
        if value is None:
            continue
        keys = key.split('.')
        target = result
        for k in keys[:-1]:
            target = target.setdefault(k, {})
        target[keys[-1]] = value
    return result


def save_config_template(output_path: Path, template: str = 'default'):
    """
    Save a configuration template to file.

    Args:
        output_path: Output file path
        template: Template type ('default', 'strict', 'permissive')
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    # Customize for specific templates
    if template == 'strict':
        config['assembly']['min_overlap'] = 50
        config['assembly']['min_reads'] = 5
        config['assembly']['min_coverage'] = 3.0
        config['assembly']['min_length'] = 200

    elif template == 'permissive':
        config['assembly']['min_overlap'] = 10
        config['assembly']['min_reads'] = 1
        config['assembly']['min_coverage'] = 0.0
        config['assembly']['min_length'] = 0

    elif template != 'default':
        raise ValueError(f"Unknown template: {template}")

    with open(output_path, 'w') as f:
        yaml.dump(config, f, default_flow_style=False, sort_keys=False)


def validate_config(config: Dict[str, Any]) -> List[str]:
    """
    Validate configuration dictionary.

    Args:
        config: Configuration to validate

    Returns:
        List of validation errors (empty if valid)
    """
    errors = []
    assembly = config.get('assembly', {})

    def check_number(key: str, kind, minimum):
        value = assembly.get(key)
        if isinstance(value, bool) or not isinstance(value, kind):
            errors.append(f"assembly.{key} must be a number, got {value!r}")
        elif value < minimum:
            errors.append(f"assembly.{key} must be >= {minimum}, got {value}")

    check_number('min_overlap', int, 1)
    check_number('min_reads', int, 1)
    check_number('min_coverage', (int, float), 0)
    check_number('min_length', int, 0)

    if not isinstance(assembly.get('sort_alignment'), bool):
        errors.append("assembly.sort_alignment must be true or false")

    if not config.get('output', {}).get('contigs'):
        errors.append("output.contigs must name an output file")

    level = str(config.get('output', {}).get('logging', {}).get('level', '')).upper()
    if level not in VALID_LOG_LEVELS:
        errors.append(f"Invalid logging level: {level} (choose from {', '.join(VALID_LOG_LEVELS)})")

    return errors
