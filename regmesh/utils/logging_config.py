"""
Logging configuration for registration and meshing runs.

This module provides standardized logging setup for the package, with
configurable verbosity levels and output formats for console and file
logging, plus a session logger for structured run reports.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Optional, Sequence, Union


# Simplified format for console output
CONSOLE_FORMAT = "%(levelname)-8s | %(message)s"

# Detailed format for file logging
FILE_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s"
)


class ColoredFormatter(logging.Formatter):
    """
    Colored log formatter for console output.

    Adds ANSI color codes to log levels for better visibility
    in terminal output.
    """

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def __init__(self, fmt: str = CONSOLE_FORMAT, use_colors: bool = True):
        super().__init__(fmt)
        self.use_colors = use_colors

    def format(self, record: logging.LogRecord) -> str:
        levelname = record.levelname
        if self.use_colors and levelname in self.COLORS:
            record.levelname = f"{self.COLORS[levelname]}{levelname}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = levelname


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    console_output: bool = True,
    use_colors: bool = True,
    module_name: str = "regmesh"
) -> logging.Logger:
    """
    Set up logging for the package.

    Args:
        level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file
        console_output: Enable console output
        use_colors: Use colored output in console
        module_name: Root module name for logger

    Returns:
        Configured package logger

    Example:
        >>> setup_logging(level=logging.DEBUG, log_file="registration.log")
        >>> logger = get_logger(__name__)
        >>> logger.info("Starting registration...")
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(module_name)
    logger.setLevel(level)
    logger.handlers.clear()

    if console_output:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(level)

        if use_colors and sys.stdout.isatty():
            formatter = ColoredFormatter(CONSOLE_FORMAT, use_colors=True)
        else:
            formatter = logging.Formatter(CONSOLE_FORMAT)

        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_file, mode='a')
        file_handler.setLevel(level)
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT))
        logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")

    # Prevent propagation to root logger
    logger.propagate = False

    return logger


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger for a specific module.

    Args:
        name: Module name (typically __name__)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)


def create_session_log(
    output_dir: Union[str, Path],
    prefix: str = "registration"
) -> Path:
    """
    Create a timestamped log file path for a session.

    Args:
        output_dir: Directory for log file
        prefix: Log file prefix

    Returns:
        Path to the log file
    """
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    return output_dir / f"{prefix}_{timestamp}.log"


class RunLogger:
    """
    Session logger for registration and meshing runs.

    Prefixes every message with the session id and appends keyword
    context as ``key=value`` pairs.

    Example:
        >>> run_logger = RunLogger("case_001")
        >>> run_logger.start("registration")
        >>> run_logger.log_iteration(0, 1.23, [0.5, -0.2])
        >>> run_logger.end()
    """

    def __init__(
        self,
        session_id: str,
        logger: Optional[logging.Logger] = None
    ):
        self.session_id = session_id
        self.logger = logger or get_logger("regmesh.session")
        self.start_time: Optional[datetime] = None
        self.task = "run"

    def _log(self, level: int, message: str, **kwargs):
        """Log message with session context."""
        extra_info = " | ".join(f"{k}={v}" for k, v in kwargs.items())
        full_message = f"[{self.session_id}] {message}"
        if extra_info:
            full_message += f" | {extra_info}"
        self.logger.log(level, full_message)

    def start(self, task: str, **kwargs):
        """Log the start of a task."""
        self.task = task
        self.start_time = datetime.now()
        self._log(logging.INFO, f"Starting {task}", **kwargs)

    def log_image_loaded(self, role: str, size: Sequence[int], spacing: Sequence[float]):
        self._log(logging.INFO, f"Loaded {role} image", size=tuple(size), spacing=tuple(spacing))

    def log_iteration(self, iteration: int, value: float, parameters: Sequence[float]):
        """Log one optimizer iteration."""
        self._log(
            logging.INFO,
            f"{iteration:4d}",
            value=f"{value:.6f}",
            parameters=[round(float(p), 6) for p in parameters]
        )

    def log_registration_result(self, result):
        """Log the outcome of a registration."""
        self._log(
            logging.INFO,
            "Registration result",
            parameters=[round(float(p), 6) for p in result.final_parameters],
            value=f"{result.final_value:.6f}",
            iterations=result.iterations,
        )
        self._log(logging.INFO, f"Optimizer stop condition: {result.stop_description}")

    def log_mesh(self, mesh, number_of_elements: Sequence[int]):
        """Log a generated mesh."""
        self._log(
            logging.INFO,
            "Mesh generated",
            lattice=tuple(number_of_elements),
            nodes=mesh.number_of_nodes,
            elements=mesh.number_of_elements,
            materials=mesh.number_of_materials,
        )

    def log_check(self, name: str, passed: bool, detail: str = ""):
        """Log a validation check as PASSED or FAILED."""
        level = logging.INFO if passed else logging.ERROR
        status = "PASSED" if passed else "FAILED"
        self._log(level, f"{name}: [{status}]" + (f" {detail}" if detail else ""))

    def log_error(self, message: str, exception: Optional[Exception] = None):
        """Log error."""
        if exception:
            self._log(logging.ERROR, f"{message}: {exception}")
        else:
            self._log(logging.ERROR, message)

    def end(self, success: bool = True):
        """Log the end of the task."""
        status = "complete" if success else "failed"
        if self.start_time:
            duration = (datetime.now() - self.start_time).total_seconds()
            self._log(
                logging.INFO if success else logging.ERROR,
                f"{self.task.capitalize()} {status}",
                duration_sec=f"{duration:.2f}"
            )
        else:
            self._log(logging.INFO if success else logging.ERROR, f"{self.task.capitalize()} {status}")
