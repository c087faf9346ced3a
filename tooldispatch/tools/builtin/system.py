"""Catalogue introspection tools so a plan can ask what is available."""
import logging

from ..router import LIST_SERVICES, LIST_TOOLS

logger = logging.getLogger(__name__)


async def list_services(ctx, params):
    return sorted(ctx.registry.list_services())


async def list_tools(ctx, params):
    name = (params.get("name") or params.get("service") or "").strip()
    if name:
        return sorted(ctx.registry.list_tools_for_service(name))
    return sorted(ctx.registry.list_tools())


class SystemService:
    name = "system"

    def register_tools(self, register):
        register(
            LIST_SERVICES,
            "List the names of all registered services",
            {"type": "object", "properties": {}},
            list_services,
        )
        register(
            LIST_TOOLS,
            "List registered tools, optionally only those of one service",
            {
                "type": "object",
                "properties": {
                    "name": {"type": "string", "description": "service name filter (case-insensitive)"},
                },
            },
            list_tools,
        )
