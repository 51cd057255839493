from .creators import ScaffoldContext, create_function, create_test
from .files import DuplicateResourceError, split_handler
from .yaml_editor import has_function, insert_function

__all__ = [
    "DuplicateResourceError",
    "ScaffoldContext",
    "create_function",
    "create_test",
    "has_function",
    "insert_function",
    "split_handler",
]
