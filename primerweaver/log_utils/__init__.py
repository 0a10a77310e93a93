from .loggers import Logger, logger

__all__ = ["Logger", "logger"]
