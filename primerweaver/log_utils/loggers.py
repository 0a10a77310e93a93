import logging
import time
import traceback
import json
import os
from contextlib import contextmanager
from primerweaver.config.logging_config import logger as base_logger, DEBUG_MODE, LOG_DIR  # Centralized logger
from pydantic import BaseModel
import numpy as np


class Logger:
    def __init__(self, name="Design", extra=None, enable_file_logging=False, log_dir="logs", custom_format=True):
        # Allow extra context info (e.g., {"module": __name__})
        self.extra = extra or {}
        child_logger = base_logger.getChild(name)
        self.logger = logging.LoggerAdapter(child_logger, self.extra)
        self.logger.logger.propagate = False  # Avoid duplicate logs
        self._setup_handlers(enable_file_logging, log_dir, custom_format)

    def _setup_handlers(self, enable_file_logging, log_dir, custom_format):
        # If custom formatting is desired, remove any existing handlers and add our own.
        if custom_format:
            for handler in self.logger.logger.handlers[:]:
                self.logger.logger.removeHandler(handler)
            console_handler = logging.StreamHandler()
            console_formatter = logging.Formatter(
                "%(asctime)s - %(levelname)s - %(message)s"
            )
            console_handler.setFormatter(console_formatter)
            self.logger.logger.addHandler(console_handler)
            self.logger.logger.setLevel(logging.DEBUG if DEBUG_MODE else logging.INFO)
        if enable_file_logging:
            os.makedirs(log_dir, exist_ok=True)
            timestamp = time.strftime("%Y%m%d_%H%M%S")
            file_handler = logging.FileHandler(
                f"{log_dir}/primerweaver_{timestamp}.log", encoding="utf-8"
            )
            file_handler.setLevel(logging.DEBUG)
            file_formatter = logging.Formatter(
                "%(asctime)s | %(levelname)-8s | %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S"
            )
            file_handler.setFormatter(file_formatter)
            self.logger.logger.addHandler(file_handler)

    @contextmanager
    def debug_context(self, operation: str):
        """Context manager for debugging a block of code."""
        start_time = time.time()
        self.logger.debug(f"Starting: {operation}")
        try:
            yield
        except Exception as e:
            self.error(f"Error in {operation}: {str(e)}\n{traceback.format_exc()}")
            raise
        finally:
            elapsed_time = time.time() - start_time
            self.logger.debug(f"Finished: {operation} (Time: {elapsed_time:.2f}s)")

    def log_step(self, step_name, message, data=None, level=logging.INFO):
        """Log a step or milestone in the code, ensuring JSON serialization of Pydantic models."""
        try:
            if isinstance(data, BaseModel):
                data_str = data.model_dump_json(indent=2)
            elif isinstance(data, list) and data and all(isinstance(i, BaseModel) for i in data):
                data_str = json.dumps([i.model_dump(mode="json") for i in data], indent=2)
            elif isinstance(data, dict) and data and all(isinstance(v, BaseModel) for v in data.values()):
                data_str = json.dumps({k: v.model_dump(mode="json") for k, v in data.items()}, indent=2)
            else:
                data_str = json.dumps(data, default=str, indent=2) if data else ""
        except (TypeError, ValueError) as e:
            data_str = f"[Failed to serialize data: {e}]"

        if data_str:
            log_message = f"{step_name} - {message}\nData: {data_str}"
        else:
            log_message = f"{step_name} - {message}"

        self.logger.log(level, log_message)

    @staticmethod
    def visualize_matrix(matrix, threshold=0):
        """
        Visualize a numpy matrix in ASCII format
        """
        if matrix.ndim <= 2:
            if matrix.ndim == 1:
                matrix = matrix.reshape(1, -1)

            rows = []
            for row in matrix:
                row_str = " ".join(
                    ["#" if val > threshold else "." for val in row])
                rows.append(row_str)

            return "\n".join(rows)
        else:
            # For higher dimensions, show summary
            return f"Matrix shape: {matrix.shape}, non-zero: {np.count_nonzero(matrix)}"

    def validate(self, condition, message, data=None):
        """Log a validation result."""
        result = bool(condition)
        status = "PASS" if result else "FAIL"
        level = logging.DEBUG if result else logging.ERROR
        data_str = json.dumps(data, default=str, indent=2) if data else ""
        self.logger.log(level, f"VALIDATION {status}: {message} {data_str}")
        return result

    def debug(self, message, data=None):
        data_str = json.dumps(data, default=str, indent=2) if data else ""
        self.logger.debug(f"{message} {data_str}")

    def warning(self, message, data=None):
        data_str = json.dumps(data, default=str, indent=2) if data else ""
        self.logger.warning(f"{message} {data_str}")

    def error(self, message, data=None, exc_info=False):
        data_str = json.dumps(data, default=str, indent=2) if data else ""
        self.logger.error(f"{message} {data_str}", exc_info=exc_info)


# Global instance for use throughout the app.
logger = Logger(enable_file_logging=bool(LOG_DIR), log_dir=LOG_DIR or "logs")
