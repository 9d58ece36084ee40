import os
import logging
import sys
from logging.handlers import RotatingFileHandler

class LoggerSetup:
    """
    Centralized logging configuration for vitalswatch.
    Every module and class gets a named logger with console output and,
    outside of test runs, a rotating debug log file.
    """
    _initialized = False
    _logs_dir = os.getenv('LOG_DIR', 'logs')
    _console_level = logging.INFO

    @classmethod
    def configure(cls, logs_dir: str | None = None, console_level: str | int | None = None) -> None:
        """
        Apply process-wide settings before (or after) loggers are created.

        Args:
            logs_dir: Directory for rotating log files
            console_level: Level name or number for console output
        """
        if logs_dir and logs_dir != cls._logs_dir:
            cls._logs_dir = logs_dir
            # Loggers created at import time still point at the old directory
            for name in list(logging.root.manager.loggerDict):
                cls._relocate_file_handlers(name)
        if console_level is not None:
            level = logging.getLevelName(console_level.upper()) if isinstance(console_level, str) else console_level
            if isinstance(level, int):
                cls._console_level = level
                for name in list(logging.root.manager.loggerDict):
                    cls.update_log_level(name, console_level=level)

    @classmethod
    def _get_log_path(cls, name: str) -> str:
        """
        Generate a log file path based on the name.
        Module paths (with dots) use their last component, class names are used as is.

        Args:
            name: Name to create log file for (module path or class name)
        Returns:
            str: Path for the log file
        """
        if '.' in name:
            filename = f"{name.split('.')[-1]}.log"
        else:
            filename = f"{name}.log"

        return os.path.join(cls._logs_dir, filename)

    @classmethod
    def _create_file_handler(cls, name: str) -> RotatingFileHandler:
        """Rotating debug log file for the named logger under the current logs directory"""
        debug_log_file = cls._get_log_path(name)
        os.makedirs(os.path.dirname(debug_log_file) or '.', exist_ok=True)

        file_handler = RotatingFileHandler(
            debug_log_file,
            maxBytes=10*1024*1024,  # 10MB per file
            backupCount=5,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(levelname)s - [%(name)s] - %(message)s'
        ))
        return file_handler

    @classmethod
    def _relocate_file_handlers(cls, name: str) -> None:
        """Replace file handlers of an existing logger with ones in the current logs directory"""
        logger = logging.getLogger(name)
        for handler in list(logger.handlers):
            if not isinstance(handler, RotatingFileHandler):
                continue
            if os.path.dirname(handler.baseFilename) == os.path.abspath(cls._logs_dir):
                continue
            try:
                replacement = cls._create_file_handler(name)
            except (PermissionError, OSError) as e:
                logger.warning(f"Could not move file logging to {cls._logs_dir}: {str(e)}")
                continue
            replacement.setLevel(handler.level)
            logger.removeHandler(handler)
            handler.close()
            logger.addHandler(replacement)

    @classmethod
    def setup(cls, name: str) -> logging.Logger:
        """
        Set up and return a logger.

        Args:
            name: Logger name (__name__ for modules or __class__.__name__ for classes)
        Returns:
            logging.Logger: Configured logger instance
        Example:
            logger = LoggerSetup.setup(__name__)
            # Writes service.log for vitalswatch.services.poller.service

            logger = LoggerSetup.setup(__class__.__name__)
            # Writes InfluxSink.log
        """
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)

        # Avoid adding handlers multiple times
        if not logger.handlers:
            console_handler = logging.StreamHandler()
            console_handler.setLevel(cls._console_level)
            console_handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(levelname)s - %(message)s'
            ))
            logger.addHandler(console_handler)

            # Only add file handler if not in test environment
            if "pytest" not in sys.modules:
                try:
                    logger.addHandler(cls._create_file_handler(name))
                except (PermissionError, OSError) as e:
                    console_handler.setLevel(logging.DEBUG)
                    logger.warning(f"Could not set up file logging: {str(e)}")

        if not cls._initialized:
            # Quiet noisy loggers
            logging.getLogger('aiohttp').setLevel(logging.WARNING)
            logging.getLogger('urllib3').setLevel(logging.WARNING)
            logging.getLogger('influxdb_client').setLevel(logging.WARNING)
            cls._initialized = True

        return logger

    @classmethod
    def update_log_level(cls, name: str,
                        console_level: int | None = None,
                        file_level: int | None = None) -> None:
        """
        Update log levels for an existing logger.

        Args:
            name: Name of the logger
            console_level: New console handler log level (if None, level remains unchanged)
            file_level: New file handler log level (if None, level remains unchanged)
        """
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if isinstance(handler, RotatingFileHandler):
                if file_level is not None:
                    handler.setLevel(file_level)
            elif isinstance(handler, logging.StreamHandler):
                if console_level is not None:
                    handler.setLevel(console_level)
