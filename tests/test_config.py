"""Tests for configuration system."""

import json
import pytest
import tempfile
import yaml
from pathlib import Path
from pedkit.config import DEFAULT_CONFIG, PedkitConfig, load_config
from pedkit.exceptions import ConfigurationError


@pytest.fixture
def sample_config():
    """Create a sample configuration."""
    return {
        'na_strings': ['', '0', 'NA'],
        'genotype_sep': '|',
        'missing_symbol': '?',
        'default_alleles': ['A', 'B'],
        'x_chromosomes': [23, 'X', 'chrX'],
    }


def write_config(content, suffix='.yaml'):
    """Write a configuration to a temporary file and return its path."""
    with tempfile.NamedTemporaryFile(mode='w', suffix=suffix, delete=False) as f:
        if isinstance(content, str):
            f.write(content)
        elif suffix == '.json':
            json.dump(content, f)
        else:
            yaml.dump(content, f)
        return f.name


def test_load_config_yaml(sample_config):
    """Test loading YAML configuration."""
    config_path = write_config(sample_config)

    try:
        config = load_config(config_path)
        assert config.na_strings == ['', '0', 'NA']
        assert config.genotype_sep == '|'
        assert config.missing_symbol == '?'
        assert config.default_alleles == ['A', 'B']
        assert config.x_chromosomes == ['23', 'X', 'chrX']
    finally:
        Path(config_path).unlink()


def test_load_config_json(sample_config):
    """Test loading JSON configuration."""
    config_path = write_config(sample_config, suffix='.json')

    try:
        config = load_config(config_path)
        assert config.genotype_sep == '|'
        assert config.is_x_chromosome('chrX')
    finally:
        Path(config_path).unlink()


def test_load_config_partial():
    """Test that absent fields get their defaults."""
    config_path = write_config({'missing_symbol': 'NA'})

    try:
        config = load_config(config_path)
        assert config.missing_symbol == 'NA'
        assert config.na_strings == DEFAULT_CONFIG.na_strings
        assert config.genotype_sep == '/'
    finally:
        Path(config_path).unlink()


def test_load_config_empty_file():
    """Test that an empty file gives the default configuration."""
    config_path = write_config('')

    try:
        assert load_config(config_path) == DEFAULT_CONFIG
    finally:
        Path(config_path).unlink()


def test_load_config_missing_file():
    """Test that a missing file raises ConfigurationError."""
    with pytest.raises(ConfigurationError):
        load_config('/nonexistent/pedkit.yaml')


def test_load_config_parse_error():
    """Test that unparsable files raise ConfigurationError."""
    config_path = write_config('{"genotype_sep": ', suffix='.json')

    try:
        with pytest.raises(ConfigurationError):
            load_config(config_path)
    finally:
        Path(config_path).unlink()


def test_load_config_unknown_field(sample_config):
    """Test that unknown fields are rejected."""
    sample_config['seed'] = 42
    config_path = write_config(sample_config)

    try:
        with pytest.raises(ConfigurationError) as excinfo:
            load_config(config_path)
        assert 'seed' in str(excinfo.value)
    finally:
        Path(config_path).unlink()


def test_load_config_invalid_values(sample_config):
    """Test that invalid field values are rejected."""
    invalid = [
        {'na_strings': 'NA'},
        {'na_strings': [['nested']]},
        {'genotype_sep': ''},
        {'missing_symbol': 0},
        {'default_alleles': []},
        {'default_alleles': ['A', 'A']},
        {'default_alleles': ['A', 'NA']},
    ]
    for update in invalid:
        config = dict(sample_config, **update)
        config_path = write_config(config)
        try:
            with pytest.raises(ConfigurationError):
                load_config(config_path)
        finally:
            Path(config_path).unlink()


def test_load_config_not_a_mapping():
    """Test that the top level must be a mapping."""
    config_path = write_config('- a\n- b\n')

    try:
        with pytest.raises(ConfigurationError):
            load_config(config_path)
    finally:
        Path(config_path).unlink()


def test_is_missing():
    """Test missing-value detection."""
    config = PedkitConfig()
    assert config.is_missing(None)
    assert config.is_missing(float('nan'))
    assert config.is_missing('0')
    assert config.is_missing(0)
    assert config.is_missing('-')
    assert not config.is_missing('A')
    assert not config.is_missing(1)
