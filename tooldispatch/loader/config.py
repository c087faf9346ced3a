"""Declarative service/tool configuration.

A tool's handler reference is a tagged union on ``kind``:

    handler: {kind: source, path: plugins/git.py, symbol: git_init}
    handler: {kind: source, code: "async def Handler(ctx, params): ..."}
    handler: {kind: module, module: mypkg.ext, symbol: handle}

The older ``plugin: <path>`` shorthand is read as a ``source`` reference.
Services and tools are off unless they say ``enabled: true``.
"""
import logging
from pathlib import Path
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from ..errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_SYMBOL = "Handler"


class SourceRef(BaseModel):
    kind: Literal["source"]
    path: Optional[str] = None
    code: Optional[str] = None
    symbol: str = DEFAULT_SYMBOL

    @model_validator(mode="after")
    def _one_origin(self):
        if bool(self.path) == bool(self.code):
            raise ValueError("source handler needs exactly one of 'path' or 'code'")
        return self


class ModuleRef(BaseModel):
    kind: Literal["module"]
    module: str
    symbol: str


HandlerRef = Annotated[Union[SourceRef, ModuleRef], Field(discriminator="kind")]


class ToolConfig(BaseModel):
    name: str
    description: str = ""
    enabled: bool = False
    input_schema: Dict[str, Any] = Field(
        default_factory=lambda: {"type": "object", "properties": {}}, alias="schema"
    )
    handler: HandlerRef

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def _legacy_plugin(cls, data: Any) -> Any:
        if isinstance(data, dict) and "plugin" in data and "handler" not in data:
            data = dict(data)
            data["handler"] = {"kind": "source", "path": data.pop("plugin")}
        return data

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("tool name must not be empty")
        return v.strip()


class ServiceConfig(BaseModel):
    name: str
    enabled: bool = False
    tools: List[ToolConfig] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("service name must not be empty")
        return v.strip()


class Config(BaseModel):
    services: List[ServiceConfig] = Field(default_factory=list)
    base_dir: Path = Path(".")


def parse_config(text: str, base_dir: Union[str, Path] = ".") -> Config:
    """Parse a YAML document. Malformed YAML or schema violations raise ConfigError."""
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigError(f"failed to parse YAML: {e}") from e
    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigError("configuration root must be a mapping with a 'services' list")
    try:
        cfg = Config.model_validate({"services": raw.get("services") or []})
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e
    cfg.base_dir = Path(base_dir)
    return cfg


def load_config(path: Union[str, Path]) -> Config:
    path = Path(path).expanduser()
    try:
        with open(path, "r", encoding="utf-8") as f:
            text = f.read()
    except OSError as e:
        raise ConfigError(f"failed to read config {path}: {e}") from e
    logger.info(f"Loaded tool config: {path}")
    return parse_config(text, base_dir=path.resolve().parent)
