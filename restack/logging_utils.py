"""Logging helpers for restack.

Library modules log through ``logging.getLogger(__name__)`` and never
configure handlers themselves; the CLI calls configure_logging once.
"""

import logging


def configure_logging(verbose: bool = False, debug: bool = False) -> None:
    """Configure the root logger from the CLI flags.

    neither -> WARNING
    --verbose -> INFO
    --debug -> DEBUG
    """
    if debug:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )
