import json
import sys
import traceback
from datetime import datetime, timezone
from typing import Optional, TextIO
from models.enums import LogLevel, LogCategory

# === ANSI COLORS ===
class Colors:
    """ANSI escape codes for colored terminal output"""
    RESET = '\033[0m'
    BOLD = '\033[1m'
    DIM = '\033[2m'

    RED = '\033[31m'
    GREEN = '\033[32m'
    YELLOW = '\033[33m'
    MAGENTA = '\033[35m'
    CYAN = '\033[36m'
    WHITE = '\033[37m'

    BRIGHT_BLUE = '\033[94m'
    BRIGHT_MAGENTA = '\033[95m'
    BRIGHT_CYAN = '\033[96m'
    BRIGHT_WHITE = '\033[97m'


CATEGORY_COLORS = {
    LogCategory.CONFIG: Colors.CYAN,
    LogCategory.SYSTEM: Colors.BRIGHT_WHITE,
    LogCategory.LIFECYCLE: Colors.BRIGHT_CYAN,
    LogCategory.SHUTDOWN: Colors.MAGENTA,
    LogCategory.SIGNAL: Colors.MAGENTA,
    LogCategory.TASK: Colors.BRIGHT_BLUE,
    LogCategory.SERVER: Colors.BRIGHT_BLUE,
    LogCategory.API: Colors.BRIGHT_MAGENTA,
    LogCategory.HTTP: Colors.DIM,
    LogCategory.METRICS: Colors.CYAN,
    LogCategory.HEALTH: Colors.GREEN,
    LogCategory.AUTH: Colors.YELLOW,
}

LEVEL_SYMBOLS = {
    LogLevel.DEBUG: '·',
    LogLevel.INFO: '✓',
    LogLevel.WARN: '⚠',
    LogLevel.ERROR: '✗',
}

LEVEL_COLORS = {
    LogLevel.DEBUG: Colors.DIM,
    LogLevel.INFO: Colors.GREEN,
    LogLevel.WARN: Colors.YELLOW,
    LogLevel.ERROR: Colors.RED,
}


# === CORE LOGGER ===
class Logger:
    """
    Structured logger with two output formats

    Dev mode (human readable tree):
    [HH:MM:SS] CATEGORY · Message
               ├─ key: value
               └─ key: value

    Production mode (one JSON object per line):
    {"ts": "...", "level": "INFO", "category": "SERVER", "msg": "...", "key": "value"}

    Example:
    [14:23:45] SERVER    ✓ Serving api
               └─ address: 0.0.0.0:8081
    """

    def __init__(
        self,
        min_level: LogLevel = LogLevel.INFO,
        use_colors: bool = True,
        dev_mode: bool = True,
        stream: Optional[TextIO] = None,
    ):
        """
        Initialize logger

        Args:
            min_level: Minimum log level to display
            use_colors: Enable ANSI color codes (ignored outside dev mode)
            dev_mode: Human tree format when True, JSON lines when False
            stream: Output stream (default: stderr at write time)
        """
        self.min_level = min_level
        self.use_colors = use_colors
        self.dev_mode = dev_mode
        self.stream = stream
        self._level_priority = {
            LogLevel.DEBUG: 0,
            LogLevel.INFO: 1,
            LogLevel.WARN: 2,
            LogLevel.ERROR: 3,
        }

    def _should_log(self, level: LogLevel) -> bool:
        """Check if message should be logged based on level"""
        return self._level_priority[level] >= self._level_priority[self.min_level]

    def _out(self) -> TextIO:
        return self.stream if self.stream is not None else sys.stderr

    def _colorize(self, text: str, color: str) -> str:
        """Apply color to text if colors enabled"""
        if not self.use_colors:
            return text
        return f"{color}{text}{Colors.RESET}"

    def _format_category(self, category: LogCategory) -> str:
        color = CATEGORY_COLORS.get(category, Colors.WHITE)
        return self._colorize(category.name.ljust(9), color)

    def _format_level_symbol(self, level: LogLevel) -> str:
        symbol = LEVEL_SYMBOLS.get(level, '·')
        return self._colorize(symbol, LEVEL_COLORS.get(level, Colors.WHITE))

    def log(
        self,
        category: LogCategory,
        message: str,
        level: LogLevel = LogLevel.INFO,
        details: Optional[list] = None,
        exc_info: bool = False,
        **kwargs
    ):
        """
        Log a structured message

        Args:
            category: Log category (SERVER, LIFECYCLE, etc.)
            message: Main message text
            level: Log level (DEBUG, INFO, WARN, ERROR)
            details: List of detail strings to show below message
            exc_info: Attach the traceback of the exception being handled
            **kwargs: Additional key-value pairs to show as details

        Example:
            logger.log(
                LogCategory.SERVER,
                "Serving",
                name="api",
                address="0.0.0.0:8081",
            )
        """
        if not self._should_log(level):
            return

        now = datetime.now(timezone.utc)
        trace = None
        if exc_info and sys.exc_info()[0] is not None:
            trace = traceback.format_exc().rstrip()

        out = self._out()

        if not self.dev_mode:
            record = {
                "ts": now.isoformat(),
                "level": level.name,
                "category": category.name,
                "msg": message,
            }
            if details:
                record["details"] = list(details)
            for k, v in kwargs.items():
                record[k] = v
            if trace:
                record["traceback"] = trace
            print(json.dumps(record, default=str), file=out, flush=True)
            return

        timestamp = now.astimezone().strftime('[%H:%M:%S]')
        cat = self._format_category(category)
        sym = self._format_level_symbol(level)
        msg = self._colorize(message, LEVEL_COLORS.get(level, Colors.WHITE))

        print(f"{timestamp} {cat} {sym} {msg}", file=out)

        all_details = list(details or [])
        for k, v in kwargs.items():
            all_details.append(f"{k}: {v}")
        if trace:
            all_details.extend(trace.splitlines())

        if all_details:
            indent = " " * 11
            for i, d in enumerate(all_details):
                tree = "└─" if i == len(all_details) - 1 else "├─"
                print(f"{indent}{self._colorize(tree, Colors.DIM)} {d}", file=out)
        out.flush()

    # === Level helpers ===
    def debug(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.DEBUG, **kw)
    def info(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.INFO, **kw)
    def warn(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.WARN, **kw)
    def error(self, category: LogCategory, message: str, **kw): self.log(category, message, LogLevel.ERROR, **kw)

    # === Contextual logger creation ===
    def for_category(self, category: LogCategory) -> 'BoundLogger':
        """Return a contextual logger bound to a specific category."""
        return BoundLogger(self, category)


class BoundLogger:
    """Logger bound to a default category, with ability to override if needed."""

    def __init__(self, base: Logger, category: LogCategory):
        self._base = base
        self._category = category

    def log(self, message: str, level: LogLevel = LogLevel.INFO, category: Optional[LogCategory] = None, **kw):
        """Allows overriding category if necessary."""
        self._base.log(category or self._category, message, level, **kw)

    def debug(self, message: str, **kw): self.log(message, LogLevel.DEBUG, **kw)
    def info(self, message: str, **kw): self.log(message, LogLevel.INFO, **kw)
    def warn(self, message: str, **kw): self.log(message, LogLevel.WARN, **kw)
    def error(self, message: str, **kw): self.log(message, LogLevel.ERROR, **kw)

    def with_category(self, category: LogCategory) -> 'BoundLogger':
        """Create another bound logger from this one."""
        return BoundLogger(self._base, category)


# === Global instance helpers ===
_logger = Logger()

def get_logger() -> Logger:
    return _logger

def get_category_logger(category: LogCategory) -> BoundLogger:
    """Returns a logger bound to a specific category"""
    return _logger.for_category(category)

def configure_logger(
    min_level: LogLevel = LogLevel.INFO,
    use_colors: Optional[bool] = None,
    dev_mode: bool = True,
    stream: Optional[TextIO] = None,
):
    """
    Configure the logger singleton (modify in-place, don't create new instance).

    Bound loggers created at import time keep pointing at the same instance,
    so reconfiguring after modules are loaded still takes effect everywhere.

    use_colors defaults to "stream is a TTY".
    """
    _logger.min_level = min_level
    _logger.dev_mode = dev_mode
    _logger.stream = stream
    if use_colors is None:
        target = stream if stream is not None else sys.stderr
        use_colors = hasattr(target, "isatty") and target.isatty()
    _logger.use_colors = use_colors
