"""Template engines tplheal can drive."""

import copy
import importlib

from tplheal import Engine

_ENGINE_MAPPING = {
    "jinja": "tplheal.engines.jinja.JinjaEngine",
    "deterministic": "tplheal.engines.deterministic.DeterministicEngine",
}


def get_engine_class(spec: str) -> type[Engine]:
    full_path = _ENGINE_MAPPING.get(spec, spec)
    try:
        module_name, class_name = full_path.rsplit(".", 1)
        module = importlib.import_module(module_name)
        return getattr(module, class_name)
    except (ValueError, ImportError, AttributeError):
        msg = f"Unknown engine type: {spec} (resolved to {full_path}, available: {list(_ENGINE_MAPPING)})"
        raise ValueError(msg)


def get_engine(config: dict, *, default_type: str = "jinja") -> Engine:
    config = copy.deepcopy(config)
    engine_class = config.pop("engine_class", default_type)
    return get_engine_class(engine_class)(**config)
