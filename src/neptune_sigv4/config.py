# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import configparser
import logging
import os
from collections.abc import Mapping, MutableMapping, Sequence
from pathlib import Path
from typing import Any, ClassVar, Final, Literal, Protocol

from .exceptions import ConfigurationError

logger: Final = logging.getLogger(__name__)

NEPTUNE_SERVICE_NAME = "neptune-db"
NEPTUNE_ANALYTICS_SERVICE_NAME = "neptune-graph"

SERVICE_NAME_PROPERTY = "aws.neptune.serviceName"
REGION_PROPERTY = "aws.neptune.region"

SOURCE_CONSTRUCTOR = "constructor"
SOURCE_PROPERTY = "property"
SOURCE_ENVIRONMENT = "environment"
SOURCE_CONFIG_FILE = "config_file"
SOURCE_DEFAULT = "default"

SourceType = Literal[
    "constructor",
    "property",
    "environment",
    "config_file",
    "default",
]


class ConfigValue:
    """Configuration value with metadata about its source"""

    def __init__(self, value: Any, source: SourceType):
        self.value = value
        self.source = source

    def __repr__(self) -> str:
        return f"ConfigValue(value={self.value!r}, source={self.source!r})"


class ValueSource(Protocol):
    """One step of a resolution chain."""

    source: SourceType

    def lookup(self, field_name: str) -> str | None:
        """Return the value for ``field_name``, or None if this source has none."""
        ...


class ConstructorSource:
    source: SourceType = SOURCE_CONSTRUCTOR

    def __init__(self, values: Mapping[str, str | None]):
        self._values = values

    def lookup(self, field_name: str) -> str | None:
        return self._values.get(field_name)


class PropertySource:
    """Runtime properties such as ``aws.neptune.region``.

    The mapping is read at lookup time, so properties set after the source was
    created are honored.
    """

    source: SourceType = SOURCE_PROPERTY

    def __init__(self, properties: Mapping[str, str], keys: Mapping[str, str]):
        self._properties = properties
        self._keys = keys

    def lookup(self, field_name: str) -> str | None:
        key = self._keys.get(field_name)
        if key is None:
            return None
        return self._properties.get(key)


class EnvironmentSource:
    source: SourceType = SOURCE_ENVIRONMENT

    def __init__(
        self,
        env_vars: Mapping[str, Sequence[str]],
        environ: Mapping[str, str] | None = None,
    ):
        self._env_vars = env_vars
        self._environ = environ

    def lookup(self, field_name: str) -> str | None:
        environ = os.environ if self._environ is None else self._environ
        for env_var in self._env_vars.get(field_name, ()):
            if value := environ.get(env_var):
                return value
        return None


class ConfigFileSource:
    """Reads values from the active profile of the shared AWS config file.

    The file is only read when a lookup reaches this source.
    """

    source: SourceType = SOURCE_CONFIG_FILE

    def __init__(
        self,
        config_keys: Mapping[str, str],
        *,
        path: Path | None = None,
        profile: str | None = None,
        environ: Mapping[str, str] | None = None,
    ):
        self._config_keys = config_keys
        self._path = path
        self._profile = profile
        self._environ = environ
        self._values: dict[str, str] | None = None

    def lookup(self, field_name: str) -> str | None:
        key = self._config_keys.get(field_name)
        if key is None:
            return None
        if self._values is None:
            self._values = self._read_config()
        return self._values.get(key)

    def _read_config(self) -> dict[str, str]:
        environ = os.environ if self._environ is None else self._environ
        config_path = self._path
        if config_path is None:
            if "AWS_CONFIG_FILE" in environ:
                config_path = Path(environ["AWS_CONFIG_FILE"]).expanduser()
            else:
                config_path = Path.home() / ".aws" / "config"
        if not config_path.exists():
            return {}

        parser = configparser.ConfigParser()
        try:
            parser.read(config_path)
        except configparser.Error as e:
            raise ConfigurationError(
                f"Unable to parse AWS config file {config_path}."
            ) from e

        profile = self._profile or environ.get("AWS_PROFILE", "default")
        section_name = f"profile {profile}" if profile != "default" else "default"

        if section_name not in parser:
            return {}

        return dict(parser[section_name])


class DefaultSource:
    source: SourceType = SOURCE_DEFAULT

    def __init__(self, defaults: Mapping[str, str | None]):
        self._defaults = defaults

    def lookup(self, field_name: str) -> str | None:
        return self._defaults.get(field_name)


class SigningConfig:
    """Signing service name and region, resolved through a precedence chain.

    Each field is resolved in order from:

    1. the value passed to the constructor,
    2. a runtime property (``aws.neptune.serviceName``, ``aws.neptune.region``),
    3. environment variables,
    4. the ``region`` key of the active profile in the shared AWS config file
       (region only),
    5. any additional ``sources``,
    6. the default (``neptune-db`` for the service, none for the region).

    Empty strings count as unset. Resolution is pure lookup; nothing here touches the
    network. An unresolved region raises :py:class:`ConfigurationError`.
    """

    CONFIG_FIELDS: ClassVar[dict[str, dict[str, Any]]] = {
        "service": {
            "property": SERVICE_NAME_PROPERTY,
            "env_vars": ("AWS_NEPTUNE_SERVICE_NAME",),
            "default": NEPTUNE_SERVICE_NAME,
        },
        "region": {
            "property": REGION_PROPERTY,
            "env_vars": ("AWS_NEPTUNE_REGION", "AWS_REGION", "AWS_DEFAULT_REGION"),
            "config_key": "region",
            "default": None,
        },
    }

    def __init__(
        self,
        *,
        service: str | None = None,
        region: str | None = None,
        properties: MutableMapping[str, str] | None = None,
        environ: Mapping[str, str] | None = None,
        config_file: Path | None = None,
        profile: str | None = None,
        sources: Sequence[ValueSource] = (),
    ):
        """
        :param service: Explicit signing service name.
        :param region: Explicit signing region.
        :param properties: Runtime properties. Defaults to an empty mapping owned by
            this config; see :py:meth:`set_property`.
        :param environ: Environment to read. Defaults to ``os.environ``.
        :param config_file: Path of the shared config file. Defaults to
            ``AWS_CONFIG_FILE`` or ``~/.aws/config``.
        :param profile: Config file profile. Defaults to ``AWS_PROFILE`` or
            ``default``.
        :param sources: Extra sources consulted after the config file and before
            the defaults.
        """
        self.properties: MutableMapping[str, str] = (
            properties if properties is not None else {}
        )
        self._sources: list[ValueSource] = [
            ConstructorSource({"service": service, "region": region}),
            PropertySource(
                self.properties,
                {name: info["property"] for name, info in self.CONFIG_FIELDS.items()},
            ),
            EnvironmentSource(
                {name: info["env_vars"] for name, info in self.CONFIG_FIELDS.items()},
                environ,
            ),
            ConfigFileSource(
                {
                    name: info["config_key"]
                    for name, info in self.CONFIG_FIELDS.items()
                    if "config_key" in info
                },
                path=config_file,
                profile=profile,
                environ=environ,
            ),
            *sources,
            DefaultSource(
                {name: info["default"] for name, info in self.CONFIG_FIELDS.items()}
            ),
        ]
        self._resolved = False

    @classmethod
    def explicit(cls, *, service: str, region: str) -> "SigningConfig":
        """Build an already resolved config from explicit values."""
        config = cls(service=service, region=region)
        config.resolve()
        return config

    def set_property(self, key: str, value: str) -> None:
        """Set a runtime property. Takes effect at the next :py:meth:`resolve`."""
        self.properties[key] = value

    def resolve(self) -> "SigningConfig":
        """Resolve every field from the source chain.

        :raises ConfigurationError: If no source provides a region.
        """
        for field_name in self.CONFIG_FIELDS:
            resolved_value = self._resolve_field(field_name)
            if resolved_value.value is None:
                raise ConfigurationError(
                    f"Unable to resolve the signing {field_name}. Pass it explicitly, "
                    f"set the {self.CONFIG_FIELDS[field_name]['property']} property, "
                    "or set one of the environment variables "
                    f"{', '.join(self.CONFIG_FIELDS[field_name]['env_vars'])}."
                )
            setattr(self, f"_{field_name}", resolved_value)
        self._resolved = True
        return self

    def _resolve_field(self, field_name: str) -> ConfigValue:
        for source in self._sources:
            value = source.lookup(field_name)
            if value:
                logger.debug(
                    "Resolved signing %s %r from %s.", field_name, value, source.source
                )
                return ConfigValue(value, source.source)
        return ConfigValue(None, SOURCE_DEFAULT)

    @property
    def resolved(self) -> bool:
        """Whether :py:meth:`resolve` has completed at least once."""
        return self._resolved

    def get_config_value_object(self, field_name: str) -> ConfigValue:
        """Get the raw ConfigValue object for a field"""
        if not self._resolved:
            raise RuntimeError("Config must be resolved before accessing values")
        return getattr(self, f"_{field_name}")

    @property
    def service(self) -> str:
        return self.get_config_value_object("service").value

    @property
    def region(self) -> str:
        return self.get_config_value_object("region").value

    def __repr__(self) -> str:
        if not self._resolved:
            return "SigningConfig(<unresolved>)"
        return f"SigningConfig(service={self.service!r}, region={self.region!r})"
