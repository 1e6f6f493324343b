from __future__ import annotations

import inspect
import logging
import reprlib
from functools import wraps
from typing import Any, Callable, Iterable, MutableMapping, Optional, Sequence, Set, TypeVar, cast

import numpy as np

F = TypeVar("F", bound=Callable[..., Any])

_WRAPPED_FLAG = "_debug_logging_wrapped"

_repr = reprlib.Repr()
_repr.maxother = 160
_repr.maxlist = 10
_repr.maxtuple = 10
_repr.maxdict = 10


def _summarize_array(value: np.ndarray, max_items: int) -> str:
    head = f"ndarray(shape={tuple(value.shape)}, dtype={value.dtype})"
    if value.size == 0:
        return head
    if value.size <= max_items:
        return f"{head}, values={_repr.repr(value.tolist())}"
    if np.issubdtype(value.dtype, np.number):
        return f"{head}, min={float(value.min()):.6g}, max={float(value.max()):.6g}"
    return head


def _summarize_items(items: Iterable[str], total: int, max_items: int) -> str:
    rendered = []
    for index, item in enumerate(items):
        if index >= max_items:
            rendered.append(f"... ({total} items)")
            break
        rendered.append(item)
    return ", ".join(rendered)


def _safe_repr(value: Any, *, max_items: int = 5, max_length: int = 400) -> str:
    """Size-bounded rendering for log lines.

    Graphs, stations and tracks render through their own compact ``__repr__``;
    arrays are summarized by shape and range.
    """

    if isinstance(value, np.ndarray):
        return _summarize_array(value, max_items)
    if isinstance(value, dict):
        pairs = (f"{_safe_repr(k)}: {_safe_repr(v)}" for k, v in value.items())
        return "{" + _summarize_items(pairs, len(value), max_items) + "}"
    if isinstance(value, (list, tuple, set, frozenset)):
        if isinstance(value, tuple):
            open_br, close_br = "(", ")"
        elif isinstance(value, list):
            open_br, close_br = "[", "]"
        else:
            open_br, close_br = "{", "}"
        inner = _summarize_items((_safe_repr(item) for item in value), len(value), max_items)
        return open_br + inner + close_br

    rendered = _repr.repr(value)
    if len(rendered) > max_length:
        rendered = rendered[:max_length] + "... (truncated)"
    return rendered


def _describe_call(args: Sequence[Any], kwargs: MutableMapping[str, Any]) -> str:
    parts = []
    if args:
        parts.append("args=[" + ", ".join(_safe_repr(a) for a in args) + "]")
    if kwargs:
        parts.append("kwargs={" + ", ".join(f"{k}={_safe_repr(v)}" for k, v in kwargs.items()) + "}")
    return ", ".join(parts) or "no-args"


def debug_log_call(
    logger: logging.Logger, *, name: Optional[str] = None, log_result: bool = True
) -> Callable[[F], F]:
    """Return a decorator that traces entry, exit and exceptions at DEBUG."""

    def decorator(func: F) -> F:
        if getattr(func, _WRAPPED_FLAG, False):
            return func
        label = name or getattr(func, "__qualname__", None) or getattr(func, "__name__", "<callable>")

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            tracing = logger.isEnabledFor(logging.DEBUG)
            if tracing:
                logger.debug("Entering %s (%s)", label, _describe_call(args, kwargs))
            try:
                result = func(*args, **kwargs)
            except Exception:
                if tracing:
                    logger.exception("Exception in %s", label)
                raise
            if tracing:
                if log_result:
                    logger.debug("Exiting %s -> %s", label, _safe_repr(result))
                else:
                    logger.debug("Exiting %s", label)
            return result

        setattr(wrapper, _WRAPPED_FLAG, True)
        return cast(F, wrapper)

    return decorator


def _wrap_class(cls: type, logger: logging.Logger, skip: Set[str]) -> None:
    for attr, value in list(vars(cls).items()):
        qualified = f"{cls.__name__}.{attr}"
        if attr.startswith("__") or attr in skip or qualified in skip:
            continue
        if isinstance(value, (staticmethod, classmethod)):
            if getattr(value.__func__, "__module__", None) == cls.__module__:
                wrapped = debug_log_call(logger, name=qualified)(value.__func__)
                setattr(cls, attr, type(value)(wrapped))
        elif inspect.isfunction(value) and value.__module__ == cls.__module__:
            setattr(cls, attr, debug_log_call(logger, name=qualified)(value))


def apply_debug_logging(
    namespace: MutableMapping[str, Any],
    *,
    logger: Optional[logging.Logger] = None,
    skip: Optional[Iterable[str]] = None,
    wrap_methods: bool = True,
) -> None:
    """Wrap the functions (and optionally class methods) defined in ``namespace``.

    Called at the bottom of a module as ``apply_debug_logging(globals(), logger=logger)``;
    objects imported from other modules are left alone.
    """

    module_name = namespace.get("__name__")
    if not isinstance(module_name, str):
        module_name = None
    logger = logger or logging.getLogger(module_name or __name__)
    skip_set = set(skip or ())

    for name, value in list(namespace.items()):
        if name in skip_set or getattr(value, "__module__", None) != module_name:
            continue
        if inspect.isfunction(value):
            namespace[name] = debug_log_call(logger, name=name)(value)
        elif wrap_methods and inspect.isclass(value):
            _wrap_class(value, logger, skip_set)


__all__ = ["apply_debug_logging", "debug_log_call"]
