import logging
import logging.handlers
from datetime import datetime
from pathlib import Path

from production_planning.config import config

RUN_LOGGER = 'planning_runs'


class Logger:
    """Logging manager for the Production Planning engine.

    Every named logger gets its own rotating file under the configured log
    directory, named after the last component of the logger name, so
    ``production_planning.services.mrp_service`` writes to ``mrp_service.log``.
    """

    _instance = None
    _loggers = {}

    def __new__(cls):
        """Singleton pattern implementation."""
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        settings = config.log_config
        self._level = getattr(logging, settings['level'].upper(), logging.INFO)
        self._formatter = logging.Formatter(settings['format'])
        self._console = settings['console_output']
        self._max_bytes = settings['max_size_mb'] * 1024 * 1024
        self._backup_count = settings['backup_count']

        # No file output when the directory cannot be created (read-only checkout)
        self._log_dir = Path(settings['directory'])
        try:
            self._log_dir.mkdir(parents=True, exist_ok=True)
        except OSError:
            self._log_dir = None

        root = logging.getLogger()
        root.setLevel(self._level)
        root.handlers = self._handlers(None)

        self._initialized = True

    def _handlers(self, log_name):
        handlers = []
        if log_name and self._log_dir is not None:
            handlers.append(logging.handlers.RotatingFileHandler(
                self._log_dir / f"{log_name}.log",
                maxBytes=self._max_bytes,
                backupCount=self._backup_count
            ))
        if self._console:
            handlers.append(logging.StreamHandler())

        for handler in handlers:
            handler.setFormatter(self._formatter)
        return handlers

    def get_logger(self, name):
        """Get a configured logger.

        Args:
            name: Logger name, usually the module's __name__

        Returns:
            Logger writing to its own rotating file and, when enabled, the console
        """
        if name not in self._loggers:
            log = logging.getLogger(name)
            log.setLevel(self._level)
            log.handlers = self._handlers(name.split('.')[-1])
            # Root has its own console handler
            log.propagate = False
            self._loggers[name] = log

        return self._loggers[name]

    def log_exception(self, logger_name, exception, message=None):
        """Log a failed operation together with its traceback."""
        text = f"{message}: {exception}" if message else str(exception)
        self.get_logger(logger_name).error(text, exc_info=exception)

    def batch_start_log(self, process_name, additional_info=None):
        """Record the start of a planning run over many schedules.

        Returns:
            Run record to hand back to batch_end_log
        """
        self.get_logger(RUN_LOGGER).info(
            f"Starting {process_name}" + (f" ({additional_info})" if additional_info else "")
        )
        return {'process_name': process_name, 'start_time': datetime.now()}

    def batch_end_log(self, log_info, success=True, result_info=None):
        """Record the outcome and duration of a planning run.

        Args:
            log_info: Run record returned by batch_start_log
            success: False when the run or any of its schedules failed
            result_info: Optional counts, e.g. {'processed': 3, 'errors': [...]}
        """
        run_logger = self.get_logger(RUN_LOGGER)
        duration = datetime.now() - log_info['start_time']
        outcome = 'Completed' if success else 'Failed'

        run_logger.log(
            logging.INFO if success else logging.ERROR,
            f"{outcome} {log_info['process_name']} in {duration}"
        )

        if result_info:
            for error in result_info.get('errors', []):
                run_logger.error(f"  {error}")
            if 'processed' in result_info:
                run_logger.info(f"  processed: {result_info['processed']}")


# Global logger instance
logger = Logger()


def get_logger(name):
    """Get a logger with the specified name."""
    return logger.get_logger(name)
