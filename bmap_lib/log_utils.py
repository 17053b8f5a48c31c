import logging

ROOT_LOGGER = "bmap"

# Topic loggers live under "bmap." and are enabled with -d/--debug.
TOPICS = frozenset({"main", "api", "codec", "payload", "assets", "render", "water", "config"})

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("werkzeug", "waitress")

_LEVEL_COLORS = {
    logging.DEBUG: "\033[38;5;252m",  # Light Grey
    logging.INFO: "\033[38;5;111m",  # Pastel Blue
    logging.WARNING: "\033[38;5;229m",  # Pale Yellow
    logging.ERROR: "\033[38;5;210m",  # Soft Red
    logging.CRITICAL: "\033[38;5;217m",  # Light Magenta
}


class RichLogFormatter(logging.Formatter):
    """Prefixes every line of a record with its level and topic, optionally in color."""

    def __init__(self, use_color=False):
        super().__init__()
        self.colors = _LEVEL_COLORS if use_color else {}
        self.bold = "\033[1m" if use_color else ""
        self.reset = "\033[0m" if use_color else ""

    def format(self, record):
        color = self.colors.get(record.levelno, "")
        topic = record.name.rpartition(".")[2][:8]
        prefix = f"{color}{record.levelname[:5]:<5}{self.reset}:{self.bold}{topic:<8}{self.reset}: "
        return "\n".join(prefix + line for line in super().format(record).split("\n"))


def resolve_debug_topics(debug_topics):
    """
    Expands a comma-separated topic list into topic names. 'all' selects every
    topic; anything else matches topics by prefix, so 'wat' selects 'water'.
    """
    requested = [t.strip() for t in debug_topics.split(",") if t.strip()]
    if "all" in requested:
        return set(TOPICS)
    return {topic for r in requested for topic in TOPICS if topic.startswith(r)}


def setup_logging(level, color_logs=False, debug_topics=None, log_file=None):
    """Configures the 'bmap' logger hierarchy for the CLI and the server."""
    root_logger = logging.getLogger(ROOT_LOGGER)
    for h in root_logger.handlers[:]:
        root_logger.removeHandler(h)
        h.close()

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(RichLogFormatter(use_color=color_logs))
    root_logger.addHandler(console_handler)
    root_logger.setLevel(level)

    if log_file:
        try:
            file_handler = logging.FileHandler(log_file, mode="w")
            file_handler.setFormatter(RichLogFormatter())
            root_logger.addHandler(file_handler)
            logging.getLogger(f"{ROOT_LOGGER}.main").info("Logging to file: %s", log_file)
        except IOError as e:
            root_logger.error("Could not open log file %s: %s", log_file, e)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if debug_topics:
        topics = resolve_debug_topics(debug_topics)
        if not topics:
            root_logger.warning(
                "No debug topic matches '%s' (known: %s)", debug_topics, ",".join(sorted(TOPICS))
            )
        for topic in topics:
            logging.getLogger(f"{ROOT_LOGGER}.{topic}").setLevel(logging.DEBUG)
