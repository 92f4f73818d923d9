"""Load the user's function source and build the invoker for it."""

from __future__ import annotations

import importlib.util
import sys
from pathlib import Path
from types import ModuleType

import structlog

from funcshim.exceptions import FunctionSourceNotFound, InvalidTarget
from funcshim.invoker import Invoker
from funcshim.registry import DEFAULT_REGISTRY, FunctionRegistry
from funcshim.settings import Settings

LOGGER = structlog.get_logger(__name__)

_MODULE_NAME = "funcshim_user_function"


def load_source(path: Path) -> ModuleType:
    """Import ``path`` as a module, running any declarative registrations in it."""
    path = Path(path).resolve()
    if not path.is_file():
        raise FunctionSourceNotFound(path)

    spec = importlib.util.spec_from_file_location(_MODULE_NAME, path)
    if spec is None or spec.loader is None:
        raise FunctionSourceNotFound(path)
    module = importlib.util.module_from_spec(spec)

    # Let the source import its sibling modules.
    source_dir = str(path.parent)
    if source_dir not in sys.path:
        sys.path.insert(0, source_dir)
    sys.modules[_MODULE_NAME] = module
    spec.loader.exec_module(module)

    LOGGER.info("loader.source_loaded", source=str(path))
    return module


def build_invoker(settings: Settings, registry: FunctionRegistry | None = None) -> Invoker:
    """Load the configured source and resolve ``settings.function_target``."""
    registry = DEFAULT_REGISTRY if registry is None else registry
    module = load_source(settings.function_source)

    target = settings.function_target
    if target in registry:
        return Invoker(target, registry=registry)

    function = getattr(module, target, None)
    if function is None:
        raise InvalidTarget(target)
    return Invoker(function, settings.signature_type, registry=registry)
