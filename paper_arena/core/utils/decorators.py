"""
Utility decorators for ledger operations.
"""

import functools
import inspect
import time
import uuid
from collections.abc import Callable
from typing import Any, TypeVar

from loguru import logger

F = TypeVar("F", bound=Callable[..., Any])

_CONTEXT_PARAMS = ("ticker", "shares", "price", "action", "ratio", "amount", "new_ticker")


def _extract_trading_context(bound_args: inspect.BoundArguments) -> dict[str, Any]:
    """Extract trading context from function arguments."""
    context: dict[str, Any] = {}
    for param_name, value in bound_args.arguments.items():
        if param_name == "self":
            continue
        if param_name == "portfolio" and hasattr(value, "agent_id"):
            context["agent_id"] = value.agent_id
        elif param_name == "decision" and hasattr(value, "action"):
            context["action"] = _serialize_parameter_value(value.action)
            context["ticker"] = value.ticker
            context["shares"] = value.shares
            context["price"] = value.estimated_price
        elif param_name in _CONTEXT_PARAMS:
            context[param_name] = _serialize_parameter_value(value)
    return context


def _serialize_parameter_value(value: Any) -> Any:
    """Serialize parameter value for logging."""
    if hasattr(value, "value"):
        return str(value.value)  # Handle enum values
    return value


def _create_success_context(
    base_context: dict[str, Any], execution_time_ms: float, result: Any
) -> dict[str, Any]:
    """Create success logging context."""
    success_context = {
        **base_context,
        "success": True,
        "execution_time_ms": round(execution_time_ms, 2),
        "result_type": type(result).__name__,
    }

    if isinstance(result, bool | int | float | str):
        success_context["result"] = result
    elif hasattr(result, "id") and hasattr(result, "action"):
        success_context["trade_id"] = result.id

    return success_context


def _create_error_context(
    base_context: dict[str, Any], execution_time_ms: float, error: Exception
) -> dict[str, Any]:
    """Create error logging context."""
    return {
        **base_context,
        "success": False,
        "execution_time_ms": round(execution_time_ms, 2),
        "error_type": type(error).__name__,
        "error_message": str(error),
        "error_code": str(getattr(error, "code", "")),
    }


def _setup_logging_context(
    func: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]
) -> tuple[dict[str, Any], str]:
    """Setup logging context for trading operations."""
    correlation_id = str(uuid.uuid4())[:8]

    sig = inspect.signature(func)
    bound_args = sig.bind(*args, **kwargs)
    bound_args.apply_defaults()

    context = {
        "correlation_id": correlation_id,
        "timestamp": str(time.time()),
        **_extract_trading_context(bound_args),
    }

    return context, func.__name__


def _execute_with_logging(
    func: Callable[..., Any],
    context: dict[str, Any],
    func_name: str,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> Any:
    """Execute function with correlation-id logging."""
    bound_logger = logger.bind(**context)
    bound_logger.debug(f"Trading operation started: {func_name}")
    start_time = time.perf_counter()

    try:
        result = func(*args, **kwargs)
    except Exception as e:
        execution_time_ms = (time.perf_counter() - start_time) * 1000
        error_context = _create_error_context(context, execution_time_ms, e)
        logger.bind(**error_context).warning(f"Trading operation failed: {func_name}: {e}")
        raise

    execution_time_ms = (time.perf_counter() - start_time) * 1000
    success_context = _create_success_context(context, execution_time_ms, result)
    if result is None:
        logger.bind(**success_context).info(f"Trading operation skipped: {func_name}")
    else:
        logger.bind(**success_context).success(f"Trading operation completed: {func_name}")
    return result


def log_trades(func: F) -> F:
    """Decorator to log trading operations with correlation IDs."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        context, func_name = _setup_logging_context(func, args, kwargs)
        return _execute_with_logging(func, context, func_name, args, kwargs)

    return wrapper  # type: ignore
