import os
from typing import Optional

KML_MIME = "application/vnd.google-earth.kml+xml"


class ValidationError(ValueError):
    """Входные данные пользователя не прошли базовую проверку (отдаём 400)."""


def safe_filename(filename: str) -> str:
    # только голое имя файла, без каталогов и специмён
    name = (filename or "").strip()
    if not name or name in {".", ".."} or "\x00" in name:
        raise ValidationError("Invalid file name")
    if "/" in name or "\\" in name or os.path.basename(name) != name:
        raise ValidationError("File name must not contain path separators")
    return name


def validate_kml_upload(filename: Optional[str], content_type: Optional[str], size: int, max_size: int) -> str:
    """Проверить загружаемый KML и вернуть имя, под которым его сохраняем.

    Принимаем, если MIME = KML или имя кончается на .kml (браузеры часто шлют octet-stream).
    """
    name = os.path.basename((filename or "").replace("\\", "/"))
    mime = (content_type or "").split(";", 1)[0].strip().lower()
    if mime != KML_MIME and not name.lower().endswith(".kml"):
        raise ValidationError("Only KML files are allowed.")
    if size > max_size:
        raise ValidationError(f"File too large. Maximum size: {max_size} bytes")
    return safe_filename(name or "upload.kml")
