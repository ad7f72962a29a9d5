"""Доступ к файловой системе для хранилища проектов.

Все вызовы к диску собраны тут, чтобы хранилище можно было гонять
в тестах с подменёнными временами создания папок.
"""

import os
import shutil
from pathlib import Path
from typing import List


class LocalFileSystem:

    def list_dirs(self, root: Path) -> List[str]:
        """Имена непосредственных подпапок root (пустой список, если root нет)."""
        try:
            with os.scandir(root) as it:
                return [e.name for e in it if e.is_dir(follow_symlinks=False)]
        except FileNotFoundError:
            return []

    def created_at(self, path: Path) -> float:
        # ctime - единственный ключ упорядочивания при очистке
        return os.stat(path).st_ctime

    def mkdir(self, path: Path, parents: bool = False, exist_ok: bool = False) -> None:
        Path(path).mkdir(parents=parents, exist_ok=exist_ok)

    def remove_tree(self, path: Path) -> bool:
        """Рекурсивно удалить папку. False если её уже нет - это не ошибка."""
        try:
            shutil.rmtree(path)
        except FileNotFoundError:
            return False
        return True

    def write_bytes(self, path: Path, data: bytes) -> None:
        with open(path, "wb") as f:
            f.write(data)
