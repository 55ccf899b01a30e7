from .logging_config import (
    LoggingConfig as LoggingConfig,
    LogOutput as LogOutput,
)
