"""Dynamic tool loader — builds registry entries from declarative config.

Every enabled tool is resolved first; only when all of them resolved and
passed the handler check are their services registered. A broken entry
therefore leaves the registry exactly as it was. Disabled services and tools
are never resolved.
"""
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Union

from ..errors import LoaderError
from ..tools.contract import ToolHandler, check_handler
from ..tools.registry import RegisterFn, ToolRegistry
from .config import Config, ServiceConfig, ToolConfig, load_config, parse_config
from .resolvers import resolver_for

logger = logging.getLogger(__name__)


@dataclass
class LoadedTool:
    config: ToolConfig
    handler: ToolHandler


@dataclass
class ConfiguredService:
    """A service assembled from configuration; registers its pre-loaded tools."""
    name: str
    tools: List[LoadedTool] = field(default_factory=list)

    def register_tools(self, register: RegisterFn) -> None:
        for loaded in self.tools:
            cfg = loaded.config
            register(cfg.name, cfg.description, cfg.input_schema, loaded.handler)


def load_tool(tool: ToolConfig, base_dir: Path) -> ToolHandler:
    """Resolve one tool's handler and check it against the contract."""
    resolver = resolver_for(tool.handler.kind, base_dir)
    try:
        handler = resolver.resolve(tool.name, tool.handler)
    except Exception as e:
        raise LoaderError(tool.name, f"failed to load {tool.handler.kind} handler: {e}") from e

    reason = check_handler(handler)
    if reason:
        raise LoaderError(tool.name, f"handler does not have the correct signature: {reason}")
    return handler


def load_services(cfg: Config) -> List[ConfiguredService]:
    services = []
    for svc in cfg.services:
        if not svc.enabled:
            logger.debug(f"Skipping disabled service: {svc.name}")
            continue
        services.append(_load_service(svc, cfg.base_dir))
    return services


def _load_service(svc: ServiceConfig, base_dir: Path) -> ConfiguredService:
    service = ConfiguredService(name=svc.name)
    for tool in svc.tools:
        if not tool.enabled:
            logger.debug(f"Skipping disabled tool: {svc.name}/{tool.name}")
            continue
        handler = load_tool(tool, base_dir)
        service.tools.append(LoadedTool(config=tool, handler=handler))
        logger.info(f"Loaded handler for {svc.name}/{tool.name} ({tool.handler.kind})")
    return service


def register_tools_from_config(registry: ToolRegistry, source: Union[str, Path, Config]) -> List[str]:
    """Load a config (path or parsed Config) and register its enabled tools.

    Returns the names of the registered tools. Raises ConfigError or
    LoaderError; in both cases nothing has been registered.
    """
    cfg = source if isinstance(source, Config) else load_config(source)
    services = load_services(cfg)

    names = []
    for service in services:
        registry.register_service(service)
        names.extend(t.config.name for t in service.tools)
    logger.info(f"Registered {len(names)} tool(s) from {len(services)} configured service(s)")
    return names


__all__ = [
    "ConfiguredService",
    "LoadedTool",
    "load_config",
    "load_services",
    "load_tool",
    "parse_config",
    "register_tools_from_config",
]
