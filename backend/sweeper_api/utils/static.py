import os
from fastapi import HTTPException, status
from fastapi.staticfiles import StaticFiles


class ProjectFiles(StaticFiles):
    """Отдача папок проектов только на чтение.

    StaticFiles сам не выходит за пределы directory, но путь всё равно
    режем заранее: "..", абсолютные куски, обратные слэши, NUL.
    """

    async def check_config(self) -> None:
        # корень создаётся лениво при первой аллокации, до этого просто 404
        if os.path.isdir(str(self.directory)):
            await super().check_config()

    def get_path(self, scope) -> str:
        path = super().get_path(scope)
        parts = path.replace("\\", "/").split("/")
        if "\\" in path or "\x00" in path or os.path.isabs(path) or ".." in parts:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
        return path

    def lookup_path(self, path: str):
        full_path, stat_result = super().lookup_path(path)
        if full_path:
            root = os.path.realpath(str(self.directory))
            if os.path.commonpath([root, os.path.realpath(full_path)]) != root:
                return "", None
        return full_path, stat_result
