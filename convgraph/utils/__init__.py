from .logger import app_logger, setup_logging

__all__ = ["app_logger", "setup_logging"]
