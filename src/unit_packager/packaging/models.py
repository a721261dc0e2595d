"""Domain models for deployable units and packaging runs."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from unit_packager.packaging.errors import ConfigurationError, PackagingError, PackagingRunError


class UnitKind(str, Enum):
    """Kinds of deployable units that produce their own archive."""

    FUNCTION = "function"
    LAYER = "layer"


@dataclass(slots=True)
class PackageConfig:
    """Packaging options declared for a unit or for the whole service."""

    include: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()
    individually: bool | None = None
    artifact: str | None = None
    disable: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> PackageConfig:
        if not data:
            return cls()
        return cls(
            include=_patterns(data.get("include"), "include"),
            exclude=_patterns(data.get("exclude"), "exclude"),
            individually=_optional_bool(data.get("individually"), "individually"),
            artifact=data.get("artifact"),
            disable=bool(data.get("disable", False)),
        )


@dataclass(slots=True)
class DeployableUnit:
    """A function or layer whose files end up in one deployment archive."""

    name: str
    kind: UnitKind
    package: PackageConfig = field(default_factory=PackageConfig)
    runtime: str | None = None
    path: str | None = None
    image: str | None = None
    _artifact_assigned: bool = field(default=False, repr=False)

    def assign_artifact(self, artifact: Path) -> Path:
        """Record the archive produced for this unit during the current run."""

        if self._artifact_assigned:
            raise PackagingError(
                f"Artifact for {self.kind.value} {self.name!r} was already assigned in this run.",
            )
        self._artifact_assigned = True
        self.package.artifact = str(artifact)
        return artifact

    @property
    def artifact_assigned(self) -> bool:
        return self._artifact_assigned


@dataclass(slots=True)
class ServiceManifest:
    """Parsed service description consumed by the packaging service."""

    name: str
    service_dir: Path
    package: PackageConfig = field(default_factory=PackageConfig)
    provider_runtime: str | None = None
    functions: dict[str, DeployableUnit] = field(default_factory=dict)
    layers: dict[str, DeployableUnit] = field(default_factory=dict)
    config_path: Path | None = None
    plugins_local_path: str | None = None
    use_dotenv: bool = False
    artifact: str | None = None

    def get_all_functions(self) -> list[str]:
        return list(self.functions)

    def get_function(self, name: str) -> DeployableUnit:
        try:
            return self.functions[name]
        except KeyError as error:
            raise ConfigurationError(f"Function {name!r} is not declared.") from error

    def get_all_layers(self) -> list[str]:
        return list(self.layers)

    def get_layer(self, name: str) -> DeployableUnit:
        try:
            return self.layers[name]
        except KeyError as error:
            raise ConfigurationError(f"Layer {name!r} is not declared.") from error

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, service_dir: Path) -> ServiceManifest:
        """Build the service description from an already-parsed mapping."""

        name = data.get("service")
        if not isinstance(name, str) or not name.strip():
            raise ConfigurationError("Service description must define a non-empty 'service' name.")

        provider = data.get("provider") or {}
        functions = {
            fn_name: DeployableUnit(
                name=fn_name,
                kind=UnitKind.FUNCTION,
                package=PackageConfig.from_dict((fn_data or {}).get("package")),
                runtime=(fn_data or {}).get("runtime"),
                image=(fn_data or {}).get("image"),
            )
            for fn_name, fn_data in _mapping(data.get("functions"), "functions").items()
        }
        layers: dict[str, DeployableUnit] = {}
        for layer_name, layer_data in _mapping(data.get("layers"), "layers").items():
            layer_data = layer_data or {}
            layer_path = layer_data.get("path")
            if not isinstance(layer_path, str) or not layer_path.strip():
                raise ConfigurationError(f"Layer {layer_name!r} must declare a 'path'.")
            layers[layer_name] = DeployableUnit(
                name=layer_name,
                kind=UnitKind.LAYER,
                package=PackageConfig.from_dict(layer_data.get("package")),
                runtime=None,
                path=layer_path,
            )

        config_path = data.get("configPath")
        return cls(
            name=name.strip(),
            service_dir=service_dir,
            package=PackageConfig.from_dict(data.get("package")),
            provider_runtime=provider.get("runtime"),
            functions=functions,
            layers=layers,
            config_path=Path(config_path) if config_path else None,
            plugins_local_path=data.get("pluginsLocalPath"),
            use_dotenv=bool(data.get("useDotenv", False)),
        )


@dataclass(slots=True)
class PackagingRunSummary:
    """Outcome of one packaging run."""

    artifacts: dict[str, Path] = field(default_factory=dict)
    service_artifact: Path | None = None
    failures: dict[str, Exception] = field(default_factory=dict)
    skipped: list[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        if self.failures:
            raise PackagingRunError(dict(self.failures))


def _patterns(value: object, label: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, Sequence) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise ConfigurationError(f"Package '{label}' must be a list of glob strings, got {value!r}.")


def _optional_bool(value: object, label: str) -> bool | None:
    if value is None or isinstance(value, bool):
        return value
    raise ConfigurationError(f"Package '{label}' must be a boolean, got {value!r}.")


def _mapping(value: object, label: str) -> Mapping[str, Any]:
    if value is None:
        return {}
    if isinstance(value, Mapping):
        return value
    raise ConfigurationError(f"Service '{label}' must be a mapping, got {type(value).__name__}.")
