"""Built-in services shipped with the dispatcher."""
from .system import SystemService

BUILTIN_SERVICES = (SystemService,)


def register_builtin_services(registry):
    for service_cls in BUILTIN_SERVICES:
        registry.register_service(service_cls())
