"""Validator YAML config loader.

Config shape::

    validator:
      enabled_suites: [Ed25519, RSA, EcdsaSecp256k1]
      strict_json: true
      max_input_bytes: 1048576

Every key is optional; omitted keys keep their defaults.  The path can also
be supplied through the ``DID_ENVELOPE_CONFIG`` environment variable (see
:func:`config_from_env`).
"""

from __future__ import annotations

import logging
import os
from collections.abc import Hashable
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Union

import yaml

from .suites import CryptoSuite, UnknownSuite

logger = logging.getLogger("didenvelope.config")

CONFIG_ENV_VAR = "DID_ENVELOPE_CONFIG"
DEFAULT_MAX_INPUT_BYTES = 1024 * 1024

_KNOWN_KEYS = frozenset({"enabled_suites", "strict_json", "max_input_bytes"})


class ValidatorConfigError(Exception):
    """Raised when the validator config is invalid."""


@dataclass(frozen=True)
class ValidatorConfig:
    """Runtime knobs for :class:`didenvelope.envelope.DidEnvelope`.

    Attributes:
        enabled_suites: Suites accepted on keys and signatures.  A tag naming
            a disabled suite is treated like an unknown tag.
        strict_json: Reject duplicate JSON keys and NaN/Infinity constants.
        max_input_bytes: Upper bound on the size of each input text.
    """
    enabled_suites: frozenset = field(default_factory=lambda: frozenset(CryptoSuite))
    strict_json: bool = True
    max_input_bytes: int = DEFAULT_MAX_INPUT_BYTES


# ---------------------------------------------------------------------------
# YAML
# ---------------------------------------------------------------------------

class _ConfigLoader(yaml.SafeLoader):
    """SafeLoader for validator config files; repeated keys are errors."""


def _construct_config_mapping(loader, node):
    loader.flatten_mapping(node)
    mapping: dict = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=True)
        if not isinstance(key, Hashable):
            raise yaml.constructor.ConstructorError(
                None, None, "unhashable config key", key_node.start_mark
            )
        if key in mapping:
            raise ValueError(
                f"Duplicate config key {key!r} at line {key_node.start_mark.line + 1}"
            )
        mapping[key] = loader.construct_object(value_node, deep=True)
    return mapping


_ConfigLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_config_mapping,
)


def safe_yaml_load(stream: Union[str, IO[str]]) -> object:
    """Parse validator config YAML; a repeated mapping key raises ``ValueError``."""
    return yaml.load(stream, Loader=_ConfigLoader)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

def _parse_suites(raw) -> frozenset:
    if not isinstance(raw, list) or not raw:
        raise ValidatorConfigError("enabled_suites must be a non-empty list")
    suites = set()
    for label in raw:
        try:
            suites.add(CryptoSuite.from_label(label))
        except UnknownSuite:
            valid = ", ".join(s.label for s in CryptoSuite)
            raise ValidatorConfigError(
                f"Unknown suite {label!r} in enabled_suites (expected one of: {valid})"
            ) from None
    return frozenset(suites)


def parse_validator_config(data: object) -> ValidatorConfig:
    """Build a :class:`ValidatorConfig` from an already-loaded mapping."""
    if data is None:
        return ValidatorConfig()
    if not isinstance(data, dict):
        raise ValidatorConfigError("Config must be a mapping")
    section = data.get("validator", {})
    if section is None:
        return ValidatorConfig()
    if not isinstance(section, dict):
        raise ValidatorConfigError("'validator' section must be a mapping")

    for key in sorted(set(section) - _KNOWN_KEYS):
        logger.warning("Ignoring unknown validator config key: %s", key)

    kwargs: dict = {}
    if "enabled_suites" in section:
        kwargs["enabled_suites"] = _parse_suites(section["enabled_suites"])
    if "strict_json" in section:
        strict = section["strict_json"]
        if not isinstance(strict, bool):
            raise ValidatorConfigError("strict_json must be a boolean")
        kwargs["strict_json"] = strict
    if "max_input_bytes" in section:
        limit = section["max_input_bytes"]
        if isinstance(limit, bool) or not isinstance(limit, int) or limit <= 0:
            raise ValidatorConfigError("max_input_bytes must be a positive integer")
        kwargs["max_input_bytes"] = limit
    return ValidatorConfig(**kwargs)


def load_validator_config(config_path: Union[str, Path]) -> ValidatorConfig:
    """Load and validate a YAML config file."""
    path = Path(config_path).expanduser()
    if not path.is_file():
        raise ValidatorConfigError(f"Config file not found: {path}")
    try:
        with open(path, encoding="utf-8") as f:
            data = safe_yaml_load(f)
    except (yaml.YAMLError, ValueError) as e:
        raise ValidatorConfigError(f"Invalid YAML in {path}: {e}") from e
    config = parse_validator_config(data)
    logger.debug("Loaded validator config from %s", path)
    return config


def config_from_env() -> ValidatorConfig:
    """Load the config named by ``DID_ENVELOPE_CONFIG``, or the defaults."""
    path = os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return ValidatorConfig()
    return load_validator_config(path)
