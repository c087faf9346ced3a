"""Module resolvers — turn a handler reference into a callable.

Each resolve gets a brand-new module object, so one tool's globals never leak
into another's and a failed load leaves nothing behind in ``sys.modules``.
"""
import importlib
import importlib.util
import itertools
import logging
import types
from pathlib import Path
from typing import Any, Dict, Type

from ..errors import ToolExecutionError
from ..tools.contract import ToolContext
from .config import ModuleRef, SourceRef

logger = logging.getLogger(__name__)

_counter = itertools.count(1)


def _fresh_module(tool_name: str) -> types.ModuleType:
    """Empty module with the handler contract types pre-injected."""
    mod = types.ModuleType(f"tooldispatch_plugin_{next(_counter)}_{tool_name}")
    mod.__dict__.update({
        "ToolContext": ToolContext,
        "ToolExecutionError": ToolExecutionError,
        "logging": logging,
    })
    return mod


class ModuleResolver:
    """Base resolver. Subclasses return the named symbol or raise."""

    def __init__(self, base_dir: Path):
        self.base_dir = Path(base_dir)

    def resolve(self, tool_name: str, ref) -> Any:
        raise NotImplementedError


class SourceResolver(ModuleResolver):
    """Executes plugin source (a .py file or inline code) in a fresh namespace."""

    def resolve(self, tool_name: str, ref: SourceRef) -> Any:
        mod = _fresh_module(tool_name)
        if ref.path:
            path = Path(ref.path).expanduser()
            if not path.is_absolute():
                path = self.base_dir / path
            source = path.read_text(encoding="utf-8")
            filename = str(path)
        else:
            source = ref.code
            filename = f"<plugin:{tool_name}>"
        mod.__file__ = filename
        logger.debug(f"Evaluating plugin source for {tool_name}: {filename}")
        exec(compile(source, filename, "exec"), mod.__dict__)

        if ref.symbol not in mod.__dict__:
            raise LookupError(f"symbol '{ref.symbol}' not defined in {filename}")
        return mod.__dict__[ref.symbol]


class ImportResolver(ModuleResolver):
    """Loads a compiled/installed module (dotted name or file path) and looks up a symbol."""

    def resolve(self, tool_name: str, ref: ModuleRef) -> Any:
        target = ref.module
        if _looks_like_path(target):
            path = Path(target).expanduser()
            if not path.is_absolute():
                path = self.base_dir / path
            stem = path.name.split(".")[0]
            # extension modules must keep their own name to find PyInit_<name>
            if path.suffix in (".so", ".pyd"):
                mod_name = stem
            else:
                mod_name = f"tooldispatch_ext_{next(_counter)}_{stem}"
            spec = importlib.util.spec_from_file_location(mod_name, path)
            if spec is None or spec.loader is None:
                raise ImportError(f"cannot load module file {path}")
            mod = importlib.util.module_from_spec(spec)
            spec.loader.exec_module(mod)
        else:
            mod = importlib.import_module(target)

        try:
            return getattr(mod, ref.symbol)
        except AttributeError:
            raise LookupError(f"module {target} has no symbol '{ref.symbol}'") from None


def _looks_like_path(target: str) -> bool:
    return "/" in target or "\\" in target or target.endswith((".py", ".pyc", ".so", ".pyd"))


RESOLVERS: Dict[str, Type[ModuleResolver]] = {
    "source": SourceResolver,
    "module": ImportResolver,
}


def resolver_for(kind: str, base_dir: Path) -> ModuleResolver:
    try:
        return RESOLVERS[kind](base_dir)
    except KeyError:
        raise LookupError(f"no resolver for handler kind '{kind}'") from None
