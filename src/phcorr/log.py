import logging
import sys

logger = logging.getLogger("phcorr")

__all__ = ["logger", "setlevel", "set_color"]


class DuplicateFilter(logging.Filter):
    """Drop a record when it repeats the previous one verbatim.

    Per-pair messages (e.g. skipped degenerate pairs) tend to come in long
    identical runs; only the first of each run is kept.
    """

    def filter(self, record):
        current_log = (record.module, record.levelno, record.msg, record.args)
        if current_log != getattr(self, "last_log", None):
            self.last_log = current_log
            return True
        return False


class BlankLineFormatter(logging.Formatter):

    def format(self, record):
        if record.msg == "" and not record.args:
            return ""
        return super().format(record)


RESET = "\033[0m"

ufstring = "%(name)-6s: [%(levelname)-9s] %(asctime)s %(message)s"

# None -> auto (detect TTY)
_config = {
    "colors_enabled": None,
}

_default_palette = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_color_palette = dict(_default_palette)


class ColoredFormatter(BlankLineFormatter):
    """Formatter that colours the whole line according to the record level."""

    def __init__(self, fmt=None, use_colors=None):
        super().__init__(fmt)
        self._use_colors = use_colors

    def _colors_on(self):
        enabled = _config.get("colors_enabled")
        if enabled is not None:
            return bool(enabled)
        if self._use_colors is not None:
            return bool(self._use_colors)
        isatty = getattr(sys.stdout, "isatty", None)
        return bool(isatty()) if isatty is not None else False

    def format(self, record):
        base = super().format(record)
        if not base or not self._colors_on():
            return base
        return f"{_color_palette.get(record.levelno, '')}{base}{RESET}"


def _ensure_handler():
    for h in logger.handlers:
        if isinstance(h, logging.StreamHandler):
            return h
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColoredFormatter(ufstring))
    logger.addHandler(handler)
    return handler


logger.setLevel(logging.INFO)
logger.addFilter(DuplicateFilter())
_ensure_handler()


def setlevel(level: int | str = logging.INFO) -> None:
    """
    Set the level of the ``phcorr`` logger.

    Parameters
    ----------
    level : int or str, optional
        A :mod:`logging` level, either numeric (``logging.DEBUG``) or by
        name (``"debug"``). Default is ``logging.INFO``.

    Raises
    ------
    ValueError
        If ``level`` is a string that does not name a logging level.
    """
    if isinstance(level, str):
        name = level.upper()
        if not isinstance(getattr(logging, name, None), int):
            raise ValueError(f"Unknown logging level: {level}")
        level = getattr(logging, name)
    logger.setLevel(level)


def set_color(enabled: bool | None = True, palette: dict | None = None) -> None:
    """
    Force coloured output on/off and optionally override the palette.

    Parameters
    ----------
    enabled : bool or None, optional
        True to force colours on, False to force off, None to auto-detect a TTY.
    palette : dict or None, optional
        Mapping from logging level ints to ANSI colour codes. Entries not
        given fall back to the default palette.
    """
    _config["colors_enabled"] = enabled

    if palette:
        _color_palette.clear()
        _color_palette.update(_default_palette)
        _color_palette.update(palette)

    for h in logger.handlers:
        if isinstance(h, logging.StreamHandler):
            h.setFormatter(ColoredFormatter(ufstring))
