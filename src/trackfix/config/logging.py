"""Root logger setup for the trackfix CLI."""

from __future__ import annotations

import logging

_NOISY_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool")


def configure_logging(*, verbose: bool = False, force: bool = False) -> None:
    """Configure root logging for command-line runs.

    ``verbose`` switches trackfix loggers to DEBUG; SQLAlchemy stays at
    WARNING either way so per-statement output never floods a scan.
    """

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
