import os
import time
import logging
from typing import List

from ..services.storage import ProjectStore, build_store
from ..settings import settings

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("targetsweeper.worker")

POLL = settings.RETENTION_INTERVAL_SEC


def run_once(store: ProjectStore) -> List[str]:
    # один проход очистки, ошибки внутри enforce уже залогированы
    evicted = store.enforce()
    if evicted:
        logger.info("Retention pass removed %d project folders", len(evicted))
    else:
        logger.debug("Retention pass: nothing to remove")
    return evicted


def main():
    store = build_store()
    logger.info("Retention worker started for %s (interval=%ss)", store.root, POLL)
    try:
        while True:
            run_once(store)
            time.sleep(POLL)
    except KeyboardInterrupt:
        logger.info("Worker stopped by KeyboardInterrupt")

if __name__ == "__main__":
    main()
