"""Tool system — contract, registry, router, executor."""
from .contract import ToolContext, ToolHandler, check_handler
from .registry import ToolDef, ToolRegistry, Service
from .router import route as route_meta_query
from .executor import execute_tool
from .builtin import register_builtin_services
