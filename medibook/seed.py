"""Load the default doctor roster: ``python -m medibook.seed``."""

import logging

from medibook.services.catalogue import seed_doctors
from medibook.services.db import get_session, init_db
from medibook.utils.config import get_settings
from medibook.utils.logging_setup import configure_logging

LOGGER = logging.getLogger(__name__)


def main() -> None:
    configure_logging(get_settings().log_level)
    init_db()
    with get_session() as session:
        doctors = seed_doctors(session)
        LOGGER.info("Roster contains %s doctors", len(doctors))


if __name__ == "__main__":
    main()
