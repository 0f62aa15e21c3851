"""Configuration loading and validation for pedkit."""

import json
import math
import yaml
from pathlib import Path
from typing import Dict, List, Any, Optional
from dataclasses import dataclass, field

from .exceptions import ConfigurationError


@dataclass(frozen=True)
class PedkitConfig:
    """Conventions used when reading, coding and displaying genotypes."""
    na_strings: List[str] = field(default_factory=lambda: ["", "0", "-"])
    genotype_sep: str = "/"
    missing_symbol: str = "-"
    default_alleles: List[str] = field(default_factory=lambda: ["1", "2"])
    x_chromosomes: List[str] = field(default_factory=lambda: ["23", "X"])

    def is_missing(self, value: Any) -> bool:
        """Return True if `value` denotes a missing allele."""
        if value is None:
            return True
        if isinstance(value, float) and math.isnan(value):
            return True
        return str(value) in self.na_strings

    def is_x_chromosome(self, chrom: Optional[str]) -> bool:
        return chrom is not None and str(chrom) in self.x_chromosomes


DEFAULT_CONFIG = PedkitConfig()


def load_config(config_path: str) -> PedkitConfig:
    """
    Load and validate configuration from YAML or JSON file.

    Args:
        config_path: Path to configuration file

    Returns:
        Validated PedkitConfig object

    Raises:
        ConfigurationError: If file doesn't exist or configuration is invalid
    """
    path = Path(config_path)

    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {config_path}")

    try:
        with open(path, 'r') as f:
            if path.suffix.lower() == '.json':
                raw_config = json.load(f)
            else:
                raw_config = yaml.safe_load(f)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Failed to parse configuration file: {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Failed to read configuration file: {e}") from e

    # An empty file means "all defaults"
    if raw_config is None:
        raw_config = {}

    validate_config(raw_config)
    normalize_config(raw_config)

    return build_config(raw_config)


def validate_config(config: Dict[str, Any]) -> None:
    """
    Validate configuration structure and values.

    All fields are optional; unknown fields are rejected.

    Args:
        config: Raw configuration dictionary

    Raises:
        ConfigurationError: If validation fails
    """
    if not isinstance(config, dict):
        raise ConfigurationError("Configuration must be a mapping")

    known_fields = {'na_strings', 'genotype_sep', 'missing_symbol', 'default_alleles', 'x_chromosomes'}
    unknown = sorted(set(config) - known_fields)
    if unknown:
        raise ConfigurationError(f"Unknown configuration field(s): {', '.join(unknown)}")

    for list_field in ('na_strings', 'default_alleles', 'x_chromosomes'):
        if list_field in config:
            value = config[list_field]
            if not isinstance(value, list):
                raise ConfigurationError(f"{list_field} must be a list")
            for item in value:
                if not isinstance(item, (str, int)) or isinstance(item, bool):
                    raise ConfigurationError(f"{list_field} entries must be strings or integers, got {item!r}")

    if 'genotype_sep' in config:
        sep = config['genotype_sep']
        if not isinstance(sep, str) or len(sep) == 0:
            raise ConfigurationError("genotype_sep must be a non-empty string")

    if 'missing_symbol' in config and not isinstance(config['missing_symbol'], str):
        raise ConfigurationError("missing_symbol must be a string")

    if 'default_alleles' in config:
        alleles = [str(a) for a in config['default_alleles']]
        if len(alleles) == 0:
            raise ConfigurationError("default_alleles must be a non-empty list")
        if len(set(alleles)) != len(alleles):
            raise ConfigurationError(f"default_alleles contains duplicates: {alleles}")
        na_strings = [str(s) for s in config.get('na_strings', DEFAULT_CONFIG.na_strings)]
        clash = [a for a in alleles if a in na_strings]
        if clash:
            raise ConfigurationError(f"default_alleles overlaps na_strings: {clash}")


def normalize_config(config: Dict[str, Any]) -> None:
    """
    Normalize configuration values (list entries become strings).

    Args:
        config: Configuration dictionary (modified in place)
    """
    for list_field in ('na_strings', 'default_alleles', 'x_chromosomes'):
        if list_field in config:
            config[list_field] = [str(item) for item in config[list_field]]


def build_config(raw_config: Dict[str, Any]) -> PedkitConfig:
    """
    Build PedkitConfig object from validated raw config.

    Args:
        raw_config: Validated and normalized configuration dictionary

    Returns:
        PedkitConfig object, with defaults for absent fields
    """
    return PedkitConfig(
        na_strings=raw_config.get('na_strings', list(DEFAULT_CONFIG.na_strings)),
        genotype_sep=raw_config.get('genotype_sep', DEFAULT_CONFIG.genotype_sep),
        missing_symbol=raw_config.get('missing_symbol', DEFAULT_CONFIG.missing_symbol),
        default_alleles=raw_config.get('default_alleles', list(DEFAULT_CONFIG.default_alleles)),
        x_chromosomes=raw_config.get('x_chromosomes', list(DEFAULT_CONFIG.x_chromosomes)),
    )
