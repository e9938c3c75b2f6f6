"""Configuration loading and Pydantic models for the Galaxy FDS client."""

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from galaxy_fds.errors import ConfigurationError

DEFAULT_ENDPOINT = "http://files.fds.api.xiaomi.com/"

ENV_ACCESS_KEY_ID = "GALAXY_FDS_ACCESS_KEY_ID"
ENV_ACCESS_SECRET = "GALAXY_FDS_ACCESS_SECRET"
ENV_ENDPOINT = "GALAXY_FDS_ENDPOINT"


class CredentialConfig(BaseModel):
    """Access key pair used for signing."""

    access_key_id: str = ""
    access_secret: str = Field(default="", repr=False)


class ClientConfig(BaseModel):
    """Service endpoint and request signing configuration."""

    endpoint: str = DEFAULT_ENDPOINT
    sign_algorithm: str = "sha1"
    delimiter: str = "/"
    timeout: float = 30.0


class LoggingConfig(BaseModel):
    """Log level and output format."""

    level: str = "INFO"
    format: str = "text"


class MetricsConfig(BaseModel):
    """Prometheus metrics configuration."""

    enabled: bool = False


class FDSConfig(BaseModel):
    """Top-level Galaxy FDS client configuration."""

    credential: CredentialConfig = Field(default_factory=CredentialConfig)
    client: ClientConfig = Field(default_factory=ClientConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)


def _parse_credential(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the credential section from YAML data."""
    if data is None:
        return {}
    return {
        "access_key_id": data.get("access_key_id", ""),
        "access_secret": data.get("access_secret", ""),
    }


def _parse_client(data: dict[str, Any] | None) -> dict[str, Any]:
    """Parse the client section from YAML data.

    Handles nested structure: client.signing.algorithm -> sign_algorithm
    """
    if data is None:
        return {}
    result: dict[str, Any] = {
        "endpoint": data.get("endpoint", DEFAULT_ENDPOINT),
        "delimiter": data.get("delimiter", "/"),
        "timeout": data.get("timeout", 30.0),
    }
    signing_section = data.get("signing")
    if isinstance(signing_section, dict):
        result["sign_algorithm"] = signing_section.get("algorithm", "sha1")
    return result


def _parse_logging(data: dict[str, Any] | None) -> dict[str, Any]:
    if data is None:
        return {}
    return {
        "level": data.get("level", "INFO"),
        "format": data.get("format", "text"),
    }


def _parse_metrics(data: dict[str, Any] | None) -> dict[str, Any]:
    if data is None:
        return {}
    return {"enabled": data.get("enabled", False)}


def apply_env_overrides(config: FDSConfig, environ: dict[str, str] | None = None) -> FDSConfig:
    """Override credential and endpoint settings from the environment.

    Args:
        config: The loaded configuration (modified in place).
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        The same configuration object.
    """
    env = os.environ if environ is None else environ
    if env.get(ENV_ACCESS_KEY_ID):
        config.credential.access_key_id = env[ENV_ACCESS_KEY_ID]
    if env.get(ENV_ACCESS_SECRET):
        config.credential.access_secret = env[ENV_ACCESS_SECRET]
    if env.get(ENV_ENDPOINT):
        config.client.endpoint = env[ENV_ENDPOINT]
    return config


def load_config(path: Path, environ: dict[str, str] | None = None) -> FDSConfig:
    """Load an FDSConfig from a YAML file.

    Args:
        path: Path to the YAML configuration file.
        environ: Environment used for overrides. Defaults to os.environ.

    Returns:
        A fully populated FDSConfig validated by Pydantic.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigurationError: If the file is not valid YAML or holds invalid values.
    """
    with open(path, "r") as fh:
        try:
            raw: dict[str, Any] = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigurationError(f"Top level of {path} must be a mapping.")

    try:
        config = FDSConfig(
            credential=CredentialConfig(**_parse_credential(raw.get("credential"))),
            client=ClientConfig(**_parse_client(raw.get("client"))),
            logging=LoggingConfig(**_parse_logging(raw.get("logging"))),
            metrics=MetricsConfig(**_parse_metrics(raw.get("metrics"))),
        )
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration in {path}: {exc}") from exc

    return apply_env_overrides(config, environ)
