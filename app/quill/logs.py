import logging

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """Root logger: one stream handler, level from LOG_LEVEL. Safe to call repeatedly."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, (level or "INFO").upper(), logging.INFO))
    if not any(getattr(h, "_quill_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._quill_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
