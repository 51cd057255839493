from .session.environment import FunctionContext, current_context
from .wrapper import LambdaContext, LambdaWrapper, LiveInvocationError, get_wrapper, init_live_module

__all__ = [
    "FunctionContext",
    "LambdaContext",
    "LambdaWrapper",
    "LiveInvocationError",
    "current_context",
    "get_wrapper",
    "init_live_module",
]
