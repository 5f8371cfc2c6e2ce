"""index-templates - converge index templates on a remote search cluster.

Lists the ``/_template`` directory, compares it against declared templates and
writes only the templates that diverge.
"""

__version__ = "0.1.0"

import logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

from .cli import main

__all__ = ["main"]
