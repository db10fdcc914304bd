# ╔════════════════════════════════════════════════════════════════════════════╗
# ║                            WHENIS LOGGING SETUP                            ║
# ║ Configures asynchronous, rotating file logging and colored console output. ║
# ║ Includes fallback mechanisms for log directory permissions.                ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# Standard library imports
import logging
import sys
import platform
import atexit
import os
import tempfile
from logging.handlers import QueueHandler, QueueListener, TimedRotatingFileHandler
from queue import Queue

# Third-party imports
from colorlog import ColoredFormatter

# Local application imports
from utils.environ import DEBUG, LOG_DIR

# ╔════════════════════════════════════════════════════════════════════════════╗
# ║ LOGGING CONFIGURATION AND CONSTANTS                                        ║
# ╚════════════════════════════════════════════════════════════════════════════╝

LOGGER_NAME = "whenis"
LOG_FILE_NAME = "whenis.log"

# Fallback directories if LOG_DIR is not writable
FALLBACK_DIRS = [
    os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "logs"),
    tempfile.gettempdir(),
]

# --- find_log_file ---
# Picks the first writable directory out of LOG_DIR and FALLBACK_DIRS.
# Returns: The log file path, or None when nothing is writable.
def find_log_file():
    for directory in [LOG_DIR, *FALLBACK_DIRS]:
        try:
            os.makedirs(directory, exist_ok=True)
        except OSError as e:
            print(f"Notice: Could not use log directory {directory}: {e}")
            continue
        if os.access(directory, os.W_OK):
            return os.path.join(directory, LOG_FILE_NAME)
    print("WARNING: Could not find any writable log directory. File logging disabled.")
    return None

# ╔════════════════════════════════════════════════════════════════════════════╗
# ║ LOGGER INITIALIZATION                                                      ║
# ╚════════════════════════════════════════════════════════════════════════════╝

# --- setup_logging ---
# Attaches a QueueHandler to the shared logger and starts a QueueListener that
# fans records out to a colored console handler and (optionally) a daily
# rotating file. Safe to call more than once; later calls are no-ops.
# Args:
#     debug: Overrides the DEBUG environment flag when given.
#     log_to_file: Set False to keep output on the console only.
# Returns: The configured logger.
def setup_logging(debug=None, log_to_file=True):
    log = logging.getLogger(LOGGER_NAME)
    if getattr(log, "_initialized", False):
        return log

    debug = DEBUG if debug is None else debug
    level = logging.DEBUG if debug else logging.INFO
    log.setLevel(level)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(ColoredFormatter(
        "%(log_color)s[%(asctime)s] %(levelname)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "bold_red",
        }
    ))
    console_handler.setLevel(level)
    handlers = [console_handler]

    log_file = find_log_file() if log_to_file else None
    if log_file:
        file_handler = TimedRotatingFileHandler(
            log_file,
            when="midnight",
            interval=1,
            backupCount=7,
            encoding="utf-8",
            delay=True
        )
        file_handler.setFormatter(logging.Formatter(
            "[%(asctime)s] %(levelname)s in %(name)s [%(filename)s:%(lineno)d]: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        ))
        file_handler.setLevel(level)
        handlers.append(file_handler)

    log_queue = Queue(-1)
    log.addHandler(QueueHandler(log_queue))
    listener = QueueListener(log_queue, *handlers, respect_handler_level=True)
    listener.start()
    log._listener = listener
    log._initialized = True

    def cleanup():
        listener.stop()
        for handler in handlers:
            handler.close()

    atexit.register(cleanup)

    log.info(f"--- Logging Initialized ({platform.system()} {platform.release()}) ---")
    log.info(f"Log Level: {'DEBUG' if debug else 'INFO'}")
    log.info(f"Log File: {log_file or 'console only'}")
    return log


# Modules import this handle; handlers are attached by setup_logging() at startup
logger = logging.getLogger(LOGGER_NAME)
