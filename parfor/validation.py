"""Worker validation and per-unit invocation.

A worker is validated once, before dispatch, against a ``WorkerShape``:
how many positional arguments it receives and which types those arguments
have. Annotations are honoured when present; unannotated workers are
accepted and their return values are checked at call time instead.
"""

import inspect
import types
import typing
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

from parfor.errors import (
    InvalidWorkerArity,
    InvalidWorkerKind,
    InvalidWorkerParamType,
    InvalidWorkerReturnType,
)
from parfor.utils.logging_utils import get_logger

logger = get_logger(__name__)

_POSITIONAL = (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)


@dataclass(frozen=True)
class WorkerShape:
    """Expected call shape: positional arity and per-argument types.

    A ``None`` entry in ``param_types`` means the argument type is not checked.
    """

    arity: int
    param_types: Tuple[Optional[type], ...] = ()

    def describe(self) -> str:
        if self.arity == 0:
            return "no parameters"
        if self.arity == 1:
            return "1 parameter"
        return f"{self.arity} parameters"


INDEX_WORKER = WorkerShape(arity=1, param_types=(int,))
KEYED_WORKER = WorkerShape(arity=2, param_types=(None, None))
FANOUT_WORKER = WorkerShape(arity=0)


def _is_union(annotation: Any) -> bool:
    return typing.get_origin(annotation) in (typing.Union, types.UnionType)


def _param_accepts(annotation: Any, value_type: type) -> bool:
    if annotation is inspect.Parameter.empty or annotation is Any:
        return True
    if isinstance(annotation, str):
        # Unresolvable forward reference; nothing to compare against
        return True
    if _is_union(annotation):
        return any(_param_accepts(arg, value_type) for arg in typing.get_args(annotation))
    if isinstance(annotation, type) and typing.get_origin(annotation) is None:
        return issubclass(value_type, annotation)
    return False


def _return_accepts(annotation: Any) -> bool:
    if annotation in (inspect.Signature.empty, None, type(None), Any):
        return True
    if isinstance(annotation, str):
        return True
    if _is_union(annotation):
        return all(_return_accepts(arg) for arg in typing.get_args(annotation))
    return (
        isinstance(annotation, type)
        and typing.get_origin(annotation) is None
        and issubclass(annotation, BaseException)
    )


def _signature(worker: Callable[..., Any]) -> Optional[inspect.Signature]:
    try:
        return inspect.signature(worker, eval_str=True)
    except (NameError, AttributeError, SyntaxError):
        return inspect.signature(worker)
    except (ValueError, TypeError):
        logger.debug(f"No introspectable signature for {worker!r}; skipping shape checks")
        return None


def validate_worker(
    worker: Any,
    shape: WorkerShape,
    *,
    name: str = "worker",
) -> Callable[..., Any]:
    """Check that ``worker`` can be dispatched with ``shape`` arguments.

    Args:
        worker: Candidate callable
        shape: Expected arity and argument types
        name: Label used in error messages

    Returns:
        The worker, unchanged

    Raises:
        InvalidWorkerKind: worker is not callable
        InvalidWorkerArity: worker cannot take exactly ``shape.arity`` arguments
        InvalidWorkerParamType: an argument annotation rejects the unit value
        InvalidWorkerReturnType: return annotation is not None or an exception

    """
    if not callable(worker):
        raise InvalidWorkerKind(f"{name} must be a function, got {type(worker).__name__}")

    signature = _signature(worker)
    if signature is None:
        return worker

    positional = []
    var_positional = None
    for param in signature.parameters.values():
        if param.kind in _POSITIONAL:
            positional.append(param)
        elif param.kind is inspect.Parameter.VAR_POSITIONAL:
            var_positional = param
        elif param.kind is inspect.Parameter.KEYWORD_ONLY and param.default is param.empty:
            raise InvalidWorkerArity(
                f"{name} must have {shape.describe()}, "
                f"but requires keyword argument {param.name!r}",
            )

    required = sum(1 for param in positional if param.default is param.empty)
    if required > shape.arity or (var_positional is None and len(positional) < shape.arity):
        raise InvalidWorkerArity(
            f"{name} must have {shape.describe()}, got {len(positional)}",
        )

    for position, expected in enumerate(shape.param_types):
        if expected is None:
            continue
        param = positional[position] if position < len(positional) else var_positional
        if param is None or _param_accepts(param.annotation, expected):
            continue
        raise InvalidWorkerParamType(
            f"{name} must have a {expected.__name__} param, "
            f"{param.name!r} is annotated {param.annotation!r}",
        )

    if not _return_accepts(signature.return_annotation):
        raise InvalidWorkerReturnType(
            f"{name} must return nothing or an exception, "
            f"annotated {signature.return_annotation!r}",
        )

    return worker


def invoke_unit(worker: Callable[..., Any], *args: Any) -> Optional[BaseException]:
    """Call ``worker(*args)`` once and normalise the outcome.

    Returns:
        None on success, otherwise the raised or returned exception

    """
    try:
        result = worker(*args)
    except Exception as exc:
        return exc

    if result is None or isinstance(result, BaseException):
        return result
    return InvalidWorkerReturnType(
        f"worker returned {type(result).__name__}, expected None or an exception",
    )
