"""Сервис хранения проектов.

Каждый запрос (загрузка KML или генерация) получает свою папку
<имя>_<epoch-ms>_<токен> внутри корня хранилища. Перед каждой аллокацией
прогоняется очистка: папки старше max_age удаляются всегда, затем самые
старые удаляются, пока их не станет <= max_count.

Очистка best-effort: любая ошибка логируется и глотается, запрос не падает.
Блокировка на экземпляр хранилища сериализует список/удаление/создание
внутри процесса. Несколько воркеров uvicorn над одним корнем дают только
мягкую границу: папок может ненадолго стать больше max_count до следующего прохода.
"""

import logging
import random
import re
import string
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Union
from urllib.parse import quote

from .filesystem import LocalFileSystem
from . import metrics
from ..settings import settings
from ..utils.validation import safe_filename

logger = logging.getLogger("targetsweeper")

SAFE_NAME_MAX_LEN = 32
DEFAULT_NAME = "project"
TOKEN_LEN = 6
ALLOCATE_ATTEMPTS = 5

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_TOKEN_ALPHABET = string.digits + string.ascii_lowercase


class StorageError(Exception):
    """Не удалось создать папку или записать файл."""


@dataclass(frozen=True)
class RetentionPolicy:
    max_age: float = 24 * 60 * 60  # секунды
    max_count: int = 100


@dataclass(frozen=True)
class ProjectDirectory:
    path: Path
    folder_name: str
    safe_name: str


@dataclass
class _Entry:
    name: str
    path: Path
    created_at: float


def sanitize(raw: Optional[str]) -> str:
    """Привести произвольную строку к [A-Za-z0-9_-]{1,32}.

    Если от исходной строки ничего не осталось (пусто, "####") - "project".
    """
    head = str(raw or "")[:SAFE_NAME_MAX_LEN]
    if not _UNSAFE_CHARS.sub("", head):
        return DEFAULT_NAME
    return _UNSAFE_CHARS.sub("_", head)


class ProjectStore:

    def __init__(
        self,
        root: Union[str, Path],
        policy: Optional[RetentionPolicy] = None,
        public_prefix: str = "/downloads",
        fs: Optional[LocalFileSystem] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.root = Path(root).resolve()
        self.policy = policy or RetentionPolicy()
        self.public_prefix = "/" + public_prefix.strip("/")
        self.fs = fs or LocalFileSystem()
        self._clock = clock
        self._lock = threading.RLock()

    # --- очистка ---

    def _scan(self) -> List[_Entry]:
        entries = []
        for name in self.fs.list_dirs(self.root):
            path = self.root / name
            try:
                created = self.fs.created_at(path)
            except FileNotFoundError:
                # папку удалили между листингом и stat
                continue
            entries.append(_Entry(name=name, path=path, created_at=created))
        entries.sort(key=lambda e: e.created_at)
        return entries

    def _evict(self, entry: _Entry, reason: str) -> bool:
        if not self.fs.remove_tree(entry.path):
            logger.debug("Project folder already gone: %s", entry.path)
            return False
        metrics.PROJECTS_EVICTED.labels(reason=reason).inc()
        logger.info("Deleted %s project folder: %s", reason, entry.path)
        return True

    def enforce(self) -> List[str]:
        """Прогнать политику хранения, вернуть имена удалённых папок."""
        evicted: List[str] = []
        with self._lock:
            try:
                now = self._clock()
                remaining = []
                for entry in self._scan():
                    if now - entry.created_at > self.policy.max_age:
                        if self._evict(entry, "expired"):
                            evicted.append(entry.name)
                    else:
                        remaining.append(entry)

                # remaining уже отсортирован, старые в начале
                while len(remaining) > self.policy.max_count:
                    entry = remaining.pop(0)
                    if self._evict(entry, "excess"):
                        evicted.append(entry.name)
                metrics.PROJECTS_KEPT.set(len(remaining))
            except Exception as e:
                metrics.RETENTION_FAILURES.inc()
                logger.warning("Retention cleanup error in %s: %s", self.root, e)
        return evicted

    # --- аллокация ---

    def _unique_suffix(self) -> str:
        millis = int(self._clock() * 1000)
        token = "".join(random.choices(_TOKEN_ALPHABET, k=TOKEN_LEN))
        return f"{millis}_{token}"

    def allocate(self, base_name: Optional[str]) -> ProjectDirectory:
        """Создать новую пустую папку проекта. StorageError если не вышло."""
        safe_name = sanitize(base_name)
        with self._lock:
            self.enforce()
            try:
                self.fs.mkdir(self.root, parents=True, exist_ok=True)
            except OSError as e:
                raise StorageError(f"Cannot create store root {self.root}: {e}") from e

            for _ in range(ALLOCATE_ATTEMPTS):
                folder_name = f"{safe_name}_{self._unique_suffix()}"
                path = self.root / folder_name
                try:
                    self.fs.mkdir(path)
                except FileExistsError:
                    logger.warning("Project folder name collision: %s, retrying", folder_name)
                    continue
                except OSError as e:
                    raise StorageError(f"Cannot create project folder {folder_name}: {e}") from e
                metrics.PROJECTS_ALLOCATED.inc()
                logger.info("Allocated project folder %s", path)
                return ProjectDirectory(path=path, folder_name=folder_name, safe_name=safe_name)

        raise StorageError(f"Cannot allocate a unique folder for '{safe_name}'")

    # --- запись и ссылки ---

    def write(self, project: ProjectDirectory, filename: str, data: Union[bytes, str]) -> Path:
        """Записать артефакт в папку проекта (перезаписывает одноимённый файл)."""
        name = safe_filename(filename)
        if isinstance(data, str):
            data = data.encode("utf-8")
        target = project.path / name
        try:
            self.fs.mkdir(project.path, parents=True, exist_ok=True)
            self.fs.write_bytes(target, data)
        except OSError as e:
            raise StorageError(f"Cannot write {name} into {project.folder_name}: {e}") from e
        return target

    def public_url(self, project: Union[ProjectDirectory, str], filename: str) -> str:
        folder_name = project.folder_name if isinstance(project, ProjectDirectory) else project
        return f"{self.public_prefix}/{folder_name}/{quote(filename)}"


def build_store() -> ProjectStore:
    """Хранилище по настройкам окружения (один экземпляр на процесс)."""
    return ProjectStore(
        root=settings.STORE_ROOT,
        policy=RetentionPolicy(
            max_age=settings.RETENTION_MAX_AGE_SEC,
            max_count=settings.RETENTION_MAX_COUNT,
        ),
        public_prefix=settings.PUBLIC_PREFIX,
    )
