"""Configuration loader with YAML support and environment variable substitution."""

import copy
import os
import re
from typing import Any, Dict

import yaml

from logger import LOG_LEVELS
from models import ConversionOptions

# CLI attribute name -> conversion option name
STYLE_ARGUMENTS = {
    'panel_style': 'panel_style',
    'table_style': 'table_style',
    'code_block_style': 'code_block_style',
    'image_style': 'image_style',
    'link_style': 'link_style',
    'heading_style': 'heading_style',
    'macro_handling': 'macro_handling',
    'attachment_option': 'attachment_option',
}

TOGGLE_ARGUMENTS = {
    'breadcrumbs': 'include_breadcrumbs',
    'metadata': 'include_metadata',
    'last_modified': 'include_last_modified',
    'attachments': 'include_attachments',
}


class ConfigLoader:
    """Handles loading and validation of configuration files."""

    ENV_VAR_PATTERN = re.compile(r'\$\{([A-Za-z_][A-Za-z0-9_]*)\}')

    @classmethod
    def load(cls, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with environment variable substitution.

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Parsed configuration dictionary

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
            ValueError: If the file does not hold a mapping
        """
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f)

        if config_data is None:
            config_data = {}
        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a dictionary")

        return cls._substitute_env_vars_recursive(config_data)

    @classmethod
    def validate(cls, config: Dict[str, Any]) -> None:
        """
        Validate configuration sections and values.

        Args:
            config: Configuration dictionary to validate

        Raises:
            ValueError: If validation fails
        """
        for section in ('conversion', 'export', 'logging'):
            value = config.get(section)
            if value is not None and not isinstance(value, dict):
                raise ValueError(f"'{section}' section must be a mapping")

        # Raises ValueError on unknown options and invalid values
        build_conversion_options(config)

        output_directory = get_nested(config, 'export.output_directory')
        if output_directory is not None:
            if not isinstance(output_directory, str) or not output_directory:
                raise ValueError("export.output_directory must be a non-empty string")
            cls._validate_substituted(output_directory, 'export.output_directory')

        post_process = get_nested(config, 'export.post_process', False)
        if not isinstance(post_process, bool):
            raise ValueError("export.post_process must be a boolean")

        level = get_nested(config, 'logging.level')
        if level is not None and str(level).upper() not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of: {list(LOG_LEVELS)}")

        log_file = get_nested(config, 'logging.file')
        if log_file:
            cls._validate_substituted(log_file, 'logging.file')

    @classmethod
    def merge_with_args(cls, config: Dict[str, Any], args: Any) -> Dict[str, Any]:
        """
        Merge command-line arguments into configuration. Arguments win.

        Args:
            config: Base configuration dictionary
            args: Parsed argparse namespace

        Returns:
            A new merged configuration dictionary
        """
        merged = copy.deepcopy(config)
        for section in ('conversion', 'export', 'logging'):
            if not isinstance(merged.get(section), dict):
                merged[section] = {}

        for arg_name, option_name in STYLE_ARGUMENTS.items():
            value = getattr(args, arg_name, None)
            if value is not None:
                merged['conversion'][option_name] = value

        for arg_name, option_name in TOGGLE_ARGUMENTS.items():
            value = getattr(args, arg_name, None)
            if value is not None:
                merged['conversion'][option_name] = value

        if getattr(args, 'output', None):
            merged['export']['output_directory'] = args.output

        if getattr(args, 'post_process', False):
            merged['export']['post_process'] = True

        verbose = getattr(args, 'verbose', 0) or 0
        if verbose >= 2:
            merged['logging']['level'] = 'DEBUG'
        elif verbose == 1:
            merged['logging']['level'] = 'INFO'

        if getattr(args, 'log_file', None):
            merged['logging']['file'] = args.log_file

        return merged

    @classmethod
    def _substitute_env_vars_recursive(cls, data: Any) -> Any:
        """Recursively substitute environment variables in data structure."""
        if isinstance(data, dict):
            return {key: cls._substitute_env_vars_recursive(value) for key, value in data.items()}
        elif isinstance(data, list):
            return [cls._substitute_env_vars_recursive(item) for item in data]
        elif isinstance(data, str):
            return cls._substitute_env_vars(data)
        return data

    @classmethod
    def _substitute_env_vars(cls, value: str) -> str:
        """Substitute ${VAR} references, leaving unknown variables untouched."""
        def replace_match(match):
            env_value = os.getenv(match.group(1))
            return env_value if env_value is not None else match.group(0)

        return cls.ENV_VAR_PATTERN.sub(replace_match, value)

    @classmethod
    def _validate_substituted(cls, value: str, field: str) -> None:
        match = cls.ENV_VAR_PATTERN.search(value)
        if match:
            raise ValueError(
                f"Configuration field '{field}' contains unsubstituted environment variable: {value}. "
                f"Please set the {match.group(1)} environment variable or provide a value in config file."
            )


def build_conversion_options(config: Dict[str, Any]) -> ConversionOptions:
    """Build ConversionOptions from the ``conversion`` section of a configuration."""
    return ConversionOptions.from_dict(config.get('conversion') or {})


def get_nested(config: dict, path: str, default: Any = None) -> Any:
    """Safely retrieve nested configuration values using dot notation.

    Args:
        config: Configuration dictionary
        path: Dot-separated path (e.g., "export.output_directory")
        default: Default value if path doesn't exist

    Returns:
        Value at the nested path or default
    """
    value = config
    for key in path.split('.'):
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value


__all__ = ['ConfigLoader', 'build_conversion_options', 'get_nested']
