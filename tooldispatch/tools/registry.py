"""Tool registry — name → handler catalogue, grouped by service."""
import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Protocol

from .contract import ToolHandler

logger = logging.getLogger(__name__)

RegisterFn = Callable[[str, str, Dict[str, Any], ToolHandler], None]


@dataclass
class ToolDef:
    name: str
    description: str
    input_schema: Dict[str, Any]
    handler: ToolHandler
    service_name: str = ""

    def summary(self) -> str:
        return f"{self.name}: {self.description}"

    def as_function(self) -> Dict[str, Any]:
        """OpenAI function-tool descriptor."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.input_schema or {"type": "object", "properties": {}},
            },
        }


class Service(Protocol):
    name: str

    def register_tools(self, register: RegisterFn) -> None:
        ...


class ToolRegistry:
    """In-memory tool catalogue.

    Registration is expected during startup only; reads return snapshots so
    concurrent dispatch never observes a dict mid-mutation.
    """

    def __init__(self):
        self._tools: Dict[str, ToolDef] = {}
        self._services: Dict[str, Service] = {}
        self._lock = threading.Lock()

    def register_tool(
        self,
        name: str,
        description: str,
        input_schema: Optional[Dict[str, Any]],
        handler: ToolHandler,
        service_name: str = "",
    ) -> None:
        """Insert or overwrite the tool keyed by ``name`` (last write wins)."""
        tool = ToolDef(
            name=name,
            description=description or "",
            input_schema=dict(input_schema or {}),
            handler=handler,
            service_name=service_name,
        )
        with self._lock:
            replaced = name in self._tools
            self._tools[name] = tool
        logger.info(f"Registered tool: {name}" + (f" [{service_name}]" if service_name else "")
                    + (" (replaced)" if replaced else ""))

    def register_service(self, service: Service) -> None:
        """Store the service, then let it register its own tools under its name."""
        with self._lock:
            self._services[service.name] = service
        logger.info(f"Registered service: {service.name}")

        def register(name, description, input_schema, handler):
            self.register_tool(name, description, input_schema, handler, service_name=service.name)

        service.register_tools(register)

    def get_tool(self, name: str) -> Optional[ToolDef]:
        return self._tools.get(name)

    def all_tools(self) -> Dict[str, ToolDef]:
        with self._lock:
            return dict(self._tools)

    def list_tools(self) -> List[str]:
        return [t.summary() for t in self.all_tools().values()]

    def list_services(self) -> List[str]:
        with self._lock:
            return list(self._services)

    def list_tools_for_service(self, service_name: str) -> List[str]:
        wanted = service_name.lower()
        return [t.summary() for t in self.all_tools().values()
                if t.service_name.lower() == wanted]

    def known_service_names(self) -> List[str]:
        """Lower-cased names of registered services and of services tools claim."""
        names = {s.lower() for s in self.list_services()}
        names.update(t.service_name.lower() for t in self.all_tools().values() if t.service_name)
        return sorted(names)

    def tools_by_service(self) -> Dict[str, List[str]]:
        grouped: Dict[str, List[str]] = {}
        for tool in self.all_tools().values():
            grouped.setdefault(tool.service_name or "misc", []).append(tool.name)
        return grouped

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
