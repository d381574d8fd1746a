import logging

RESET = "\033[0m"
DIM = "\033[2m"
BOLD = "\033[1m"
RED = "\033[31m"
GREEN = "\033[32m"
YELLOW = "\033[33m"
CYAN = "\033[36m"
MAGENTA = "\033[35m"

LEVEL_STYLES = {
    logging.DEBUG: DIM,
    logging.INFO: GREEN,
    logging.WARNING: YELLOW,
    logging.ERROR: RED,
    logging.CRITICAL: RED + BOLD,
}

# Message prefixes emitted by the session and the diagnostics engine.
MESSAGE_STYLES: tuple[tuple[str, str], ...] = (
    ("State: ", DIM + CYAN),
    ("Logged on to ", CYAN),
    ("Session to ", BOLD + RED),
    ("Issues detected on ", BOLD + MAGENTA),
    ("Restarting ", BOLD + CYAN),
    ("Restart of ", BOLD + RED),
    ("Resolved: ", BOLD + GREEN),
    ("Persistent: ", BOLD + YELLOW),
    ("Remediation finished on ", BOLD),
)


def message_style(msg: str) -> str | None:
    for prefix, style in MESSAGE_STYLES:
        if msg.startswith(prefix):
            return style
    return None


class ColoredFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        level_style = LEVEL_STYLES.get(record.levelno, "")
        stamp = self.formatTime(record, self.datefmt)
        source = record.name.rsplit(".", 1)[-1]
        msg = record.getMessage()

        style = message_style(msg)
        if style is None and record.levelno == logging.DEBUG:
            style = DIM
        elif style is None and record.levelno >= logging.WARNING:
            style = level_style
        if style:
            msg = f"{style}{msg}{RESET}"

        return f"{DIM}{stamp}{RESET} {level_style}{record.levelname:<7}{RESET} {DIM}{source:<12}{RESET} {msg}"


def configure_logging(verbose: bool = False) -> None:
    handler = logging.StreamHandler()
    handler.setFormatter(ColoredFormatter(datefmt="%H:%M:%S"))
    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    if not verbose:
        logging.getLogger("asyncio").setLevel(logging.WARNING)
