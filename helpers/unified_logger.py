"""
Unified logging system for the grid engine.

Provides consistent, colored, and informative logging across all components:
- Strategy engine (decision steps, executed trades)
- Services (scheduler, price feed, controller)
- Exchange adapters
- Core utilities (database, config)

Based on loguru with enhanced formatting and component-specific context.
"""

import os
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

from loguru import logger as _logger

SOURCE_COLUMN_WIDTH = 55


def _logs_dir() -> Path:
    configured = os.getenv("GRIDBOT_LOG_DIR")
    logs_dir = Path(configured) if configured else Path(__file__).parent.parent / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)
    return logs_dir


def _shorten_module(module: str, max_width: int) -> str:
    """Keep the trailing dotted segments of ``module`` that fit in ``max_width``."""
    if len(module) <= max_width:
        return module
    parts = module.split(".")
    for idx in range(len(parts) - 1):
        candidate = ".".join(parts[idx + 1:])
        if len(candidate) + 3 <= max_width:
            return f"...{candidate}"
    tail = parts[-1]
    return f"...{tail[-(max_width - 3):]}"


def _console_filter(record) -> bool:
    if not record["extra"].get("component_id"):
        return False
    function_name = record.get("function", "")
    suffix = f":{function_name}:{record.get('line', 0)}" if function_name else f":{record.get('line', 0)}"
    room = SOURCE_COLUMN_WIDTH - len(suffix)
    module = record.get("module") or record.get("name", "")
    module_display = "..." if room <= 3 else _shorten_module(module, room)
    record["extra"]["short_name"] = f"{module_display}{suffix}".rjust(SOURCE_COLUMN_WIDTH)
    return True


def _ensure_component(record) -> bool:
    record["extra"].setdefault("component_id", "UNKNOWN")
    return True


_FILE_FORMAT = (
    "{time:YYYY-MM-DD HH:mm:ss} | "
    "{level:<8} | "
    "{extra[component_id]:<35} | "
    "{message}"
)


class UnifiedLogger:
    """
    Unified logger that provides consistent formatting across all components.

    Features:
    - Colored console output with source location (file:function:line)
    - Component-specific context (order, wallet, etc.)
    - Shared history file and per-session file
    - ``.log(message, level)`` calls used throughout the engine
    """

    def __init__(
        self,
        component_type: str,  # "strategy", "service", "exchange", "core"
        component_name: str,  # "grid_engine", "grid_scheduler", "paper", etc.
        context: Optional[Dict[str, Any]] = None,
        log_to_console: bool = True,
        log_level: str = "INFO"
    ):
        self.component_type = component_type.upper()
        self.component_name = component_name.upper()
        self.context = context or {}
        self.log_level = log_level.upper()

        self.component_id = f"{self.component_type}:{self.component_name}"
        if self.context:
            context_str = ":".join([f"{k}={v}" for k, v in self.context.items()])
            self.component_id = f"{self.component_id}:{context_str}"

        self._setup_sinks(log_to_console)
        self._logger = _logger.bind(component_id=self.component_id)

    def _setup_sinks(self, log_to_console: bool):
        """Install the shared loguru sinks once per process."""
        if not hasattr(_logger, "_gridbot_console_setup"):
            _logger.remove()
            if log_to_console:
                _logger.add(
                    sys.stdout,
                    format=(
                        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
                        "<level>{level: <8}</level> | "
                        "<cyan>{extra[short_name]}</cyan> | "
                        "<level>{message}</level>"
                    ),
                    level=self.log_level,
                    colorize=True,
                    filter=_console_filter,
                    backtrace=True,
                    diagnose=False,
                )
            _logger._gridbot_console_setup = True

        if os.getenv("GRIDBOT_LOG_TO_FILE", "true").lower() in ("0", "false", "no"):
            return

        if not hasattr(_logger, "_gridbot_history_setup"):
            _logger.add(
                str(_logs_dir() / "unified_history.log"),
                format=_FILE_FORMAT,
                level="DEBUG",
                filter=_ensure_component,
                rotation="50 MB",
                retention=5,
                enqueue=True,
                catch=True,
            )
            _logger._gridbot_history_setup = True

        if not hasattr(_logger, "_gridbot_session_setup"):
            session_ts = datetime.now().strftime("%Y%m%d_%H%M%S")
            _logger.add(
                str(_logs_dir() / f"session_{session_ts}.log"),
                format=_FILE_FORMAT,
                level="DEBUG",
                filter=_ensure_component,
                enqueue=True,
                catch=True,
            )
            _logger._gridbot_session_setup = True

    def debug(self, message: str, **kwargs):
        self._logger.opt(depth=1).debug(message, **kwargs)

    def info(self, message: str, **kwargs):
        self._logger.opt(depth=1).info(message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._logger.opt(depth=1).warning(message, **kwargs)

    def error(self, message: str, **kwargs):
        self._logger.opt(depth=1).error(message, **kwargs)

    def exception(self, message: str, **kwargs):
        """Log an error with the active exception's traceback."""
        self._logger.opt(depth=1, exception=True).error(message, **kwargs)

    def log(self, message: str, level: str = "INFO", **kwargs):
        """
        Log ``message`` at ``level`` (DEBUG, INFO, WARNING, ERROR, CRITICAL).

        Extra keyword arguments are attached to the record as structured context.
        """
        level = level.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            level = "INFO"
        # depth=1 reports the caller instead of this wrapper
        self._logger.opt(depth=1).bind(**kwargs).log(level, message)

    def with_context(self, **context) -> 'UnifiedLogger':
        """New logger for the same component with extra context (order_id, wallet, ...)."""
        return UnifiedLogger(
            component_type=self.component_type.lower(),
            component_name=self.component_name.lower(),
            context={**self.context, **context},
            log_level=self.log_level
        )

    @staticmethod
    def flush_all_handlers():
        """Wait for enqueued file writes before process exit."""
        try:
            _logger.complete()
        except Exception as exc:
            sys.stderr.write(f"log flush failed: {exc}\n")
        time.sleep(0.1)
        sys.stdout.flush()
        sys.stderr.flush()


def get_logger(
    component_type: str,
    component_name: str,
    context: Optional[Dict[str, Any]] = None,
    log_to_console: bool = True,
    log_level: Optional[str] = None
) -> UnifiedLogger:
    """
    Factory function to create unified loggers.

    Examples:
        logger = get_strategy_logger("grid_engine")
        logger = get_service_logger("grid_scheduler")
        logger = get_exchange_logger("paper", wallet="0xabc")
    """
    if log_level is None:
        log_level = os.getenv('LOG_LEVEL', 'INFO')

    return UnifiedLogger(
        component_type=component_type,
        component_name=component_name,
        context=context,
        log_to_console=log_to_console,
        log_level=log_level
    )


def get_exchange_logger(exchange_name: str, **context) -> UnifiedLogger:
    """Get logger for exchange adapters."""
    return get_logger("exchange", exchange_name, context)


def get_strategy_logger(strategy_name: str, **context) -> UnifiedLogger:
    """Get logger for the grid engine."""
    return get_logger("strategy", strategy_name, context)


def get_service_logger(service_name: str, **context) -> UnifiedLogger:
    """Get logger for services."""
    return get_logger("service", service_name, context)


def get_core_logger(module_name: str, **context) -> UnifiedLogger:
    """Get logger for core utilities."""
    return get_logger("core", module_name, context)
