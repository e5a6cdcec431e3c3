"""Data models for registry objects: descriptors, manifests, indexes and configurations."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from .exceptions import DecodingError, ValidationError
from .media_types import OCI_INDEX, OCI_MANIFEST


def encode_json(value: Any) -> bytes:
    """Encode a model or plain JSON value to its canonical byte form.

    Keys are sorted and separators are compact, so equal values always
    produce identical bytes and therefore identical digests.

    Raises:
        ValidationError: If value is not JSON serializable
    """
    if hasattr(value, "to_dict"):
        value = value.to_dict()
    try:
        encoded = json.dumps(value, sort_keys=True, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        raise ValidationError(f"Cannot encode {type(value).__name__} as JSON: {e}") from e
    return encoded.encode("utf-8")


def decode_json(data: bytes) -> Any:
    """Decode a JSON response body."""
    try:
        return json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise DecodingError(f"Invalid JSON: {e}") from e


def _require(data: Any, key: str, model: str) -> Any:
    if not isinstance(data, dict):
        raise DecodingError(f"{model} must be a JSON object")
    try:
        return data[key]
    except KeyError as e:
        raise DecodingError(f"{model} is missing required field {key!r}") from e


def _compact(values: dict[str, Any]) -> dict[str, Any]:
    """Drop unset optional fields."""
    return {key: value for key, value in values.items() if value is not None}


@dataclass(frozen=True)
class Platform:
    """Platform an index entry was built for."""

    architecture: str
    os: str
    variant: str | None = None
    os_version: str | None = None
    os_features: list[str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "architecture": self.architecture,
                "os": self.os,
                "variant": self.variant,
                "os.version": self.os_version,
                "os.features": self.os_features,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Platform:
        return cls(
            architecture=_require(data, "architecture", "Platform"),
            os=_require(data, "os", "Platform"),
            variant=data.get("variant"),
            os_version=data.get("os.version"),
            os_features=data.get("os.features"),
        )


@dataclass(frozen=True)
class ContentDescriptor:
    """Reference to a stored blob, addressed by its digest."""

    media_type: str
    digest: str
    size: int
    urls: list[str] | None = None
    annotations: dict[str, str] | None = None
    platform: Platform | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "mediaType": self.media_type,
                "digest": self.digest,
                "size": self.size,
                "urls": self.urls,
                "annotations": self.annotations,
                "platform": self.platform.to_dict() if self.platform else None,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentDescriptor:
        platform = data.get("platform") if isinstance(data, dict) else None
        return cls(
            media_type=_require(data, "mediaType", "ContentDescriptor"),
            digest=_require(data, "digest", "ContentDescriptor"),
            size=_require(data, "size", "ContentDescriptor"),
            urls=data.get("urls"),
            annotations=data.get("annotations"),
            platform=Platform.from_dict(platform) if platform else None,
        )


@dataclass(frozen=True)
class ImageManifest:
    """Config blob plus ordered layers for one platform variant of an image."""

    config: ContentDescriptor
    layers: list[ContentDescriptor] = field(default_factory=list)
    schema_version: int = 2
    media_type: str | None = OCI_MANIFEST
    annotations: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "schemaVersion": self.schema_version,
                "mediaType": self.media_type,
                "config": self.config.to_dict(),
                "layers": [layer.to_dict() for layer in self.layers],
                "annotations": self.annotations,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageManifest:
        return cls(
            schema_version=_require(data, "schemaVersion", "ImageManifest"),
            media_type=data.get("mediaType"),
            config=ContentDescriptor.from_dict(_require(data, "config", "ImageManifest")),
            layers=[
                ContentDescriptor.from_dict(layer)
                for layer in _require(data, "layers", "ImageManifest")
            ],
            annotations=data.get("annotations"),
        )


@dataclass(frozen=True)
class ImageIndex:
    """Multi-architecture fan-out: one manifest descriptor per platform."""

    manifests: list[ContentDescriptor] = field(default_factory=list)
    schema_version: int = 2
    media_type: str | None = OCI_INDEX
    annotations: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "schemaVersion": self.schema_version,
                "mediaType": self.media_type,
                "manifests": [manifest.to_dict() for manifest in self.manifests],
                "annotations": self.annotations,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageIndex:
        return cls(
            schema_version=_require(data, "schemaVersion", "ImageIndex"),
            media_type=data.get("mediaType"),
            manifests=[
                ContentDescriptor.from_dict(manifest)
                for manifest in _require(data, "manifests", "ImageIndex")
            ],
            annotations=data.get("annotations"),
        )

    def find_manifest(self, architecture: str) -> ContentDescriptor | None:
        """Return the first entry built for architecture."""
        for manifest in self.manifests:
            if manifest.platform and manifest.platform.architecture == architecture:
                return manifest
        return None


# Runtime config keys as they appear in the JSON document
_RUNTIME_CONFIG_KEYS = {
    "user": "User",
    "exposed_ports": "ExposedPorts",
    "env": "Env",
    "entrypoint": "Entrypoint",
    "cmd": "Cmd",
    "volumes": "Volumes",
    "working_dir": "WorkingDir",
    "labels": "Labels",
    "stop_signal": "StopSignal",
}


@dataclass(frozen=True)
class ImageConfigurationConfig:
    """Execution parameters used when running a container from the image."""

    user: str | None = None
    exposed_ports: dict[str, dict[str, Any]] | None = None
    env: list[str] | None = None
    entrypoint: list[str] | None = None
    cmd: list[str] | None = None
    volumes: dict[str, dict[str, Any]] | None = None
    working_dir: str | None = None
    labels: dict[str, str] | None = None
    stop_signal: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {key: getattr(self, attr) for attr, key in _RUNTIME_CONFIG_KEYS.items()}
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageConfigurationConfig:
        return cls(**{attr: data.get(key) for attr, key in _RUNTIME_CONFIG_KEYS.items()})


@dataclass(frozen=True)
class ImageConfigurationRootfs:
    """Layer content addresses by uncompressed digest (diffID)."""

    diff_ids: list[str] = field(default_factory=list)
    type: str = "layers"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "diff_ids": list(self.diff_ids)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageConfigurationRootfs:
        return cls(
            type=_require(data, "type", "ImageConfigurationRootfs"),
            diff_ids=_require(data, "diff_ids", "ImageConfigurationRootfs"),
        )


@dataclass(frozen=True)
class ImageConfigurationHistory:
    """Describes how one layer was created."""

    created: str | None = None
    author: str | None = None
    created_by: str | None = None
    comment: str | None = None
    empty_layer: bool | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "created": self.created,
                "author": self.author,
                "created_by": self.created_by,
                "comment": self.comment,
                "empty_layer": self.empty_layer,
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageConfigurationHistory:
        return cls(
            created=data.get("created"),
            author=data.get("author"),
            created_by=data.get("created_by"),
            comment=data.get("comment"),
            empty_layer=data.get("empty_layer"),
        )


@dataclass(frozen=True)
class ImageConfiguration:
    """Image configuration blob.

    ``rootfs.diff_ids`` must list one uncompressed digest per manifest
    layer, in the same order. The client does not check this.
    """

    architecture: str
    os: str
    rootfs: ImageConfigurationRootfs = field(default_factory=ImageConfigurationRootfs)
    created: str | None = None
    author: str | None = None
    variant: str | None = None
    config: ImageConfigurationConfig | None = None
    history: list[ImageConfigurationHistory] | None = None

    def to_dict(self) -> dict[str, Any]:
        return _compact(
            {
                "created": self.created,
                "author": self.author,
                "architecture": self.architecture,
                "os": self.os,
                "variant": self.variant,
                "config": self.config.to_dict() if self.config else None,
                "rootfs": self.rootfs.to_dict(),
                "history": (
                    [entry.to_dict() for entry in self.history]
                    if self.history is not None
                    else None
                ),
            }
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImageConfiguration:
        runtime_config = data.get("config") if isinstance(data, dict) else None
        history = data.get("history") if isinstance(data, dict) else None
        return cls(
            architecture=_require(data, "architecture", "ImageConfiguration"),
            os=_require(data, "os", "ImageConfiguration"),
            rootfs=ImageConfigurationRootfs.from_dict(
                _require(data, "rootfs", "ImageConfiguration")
            ),
            created=data.get("created"),
            author=data.get("author"),
            variant=data.get("variant"),
            config=(
                ImageConfigurationConfig.from_dict(runtime_config)
                if runtime_config
                else None
            ),
            history=(
                [ImageConfigurationHistory.from_dict(entry) for entry in history]
                if history is not None
                else None
            ),
        )


@dataclass(frozen=True)
class Tags:
    """Tag listing for a repository."""

    name: str
    tags: list[str]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Tags:
        tags = _require(data, "tags", "Tags")
        # null means the repository has no tags; callers get an error, not []
        if not isinstance(tags, list):
            raise DecodingError(f"Tag list for {data.get('name')!r} is {tags!r}")
        return cls(name=_require(data, "name", "Tags"), tags=tags)


@dataclass(frozen=True)
class RegistryErrorDetail:
    """One entry of a registry's structured error response."""

    code: str
    message: str = ""
    detail: Any = None

    def __str__(self) -> str:
        return f"{self.code}: {self.message}" if self.message else self.code

    @classmethod
    def parse_errors(cls, body: bytes) -> list[RegistryErrorDetail]:
        """Decode ``{"errors": [...]}``; returns an empty list if body is not one."""
        try:
            data = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError):
            return []
        if not isinstance(data, dict) or not isinstance(data.get("errors"), list):
            return []
        return [
            cls(
                code=str(error.get("code", "UNKNOWN")),
                message=str(error.get("message", "")),
                detail=error.get("detail"),
            )
            for error in data["errors"]
            if isinstance(error, dict)
        ]
