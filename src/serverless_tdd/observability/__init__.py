from .logger import CliLog

__all__ = ["CliLog"]
