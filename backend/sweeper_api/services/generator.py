"""Граница с внешним генератором KML/CSV/KMZ.

Сам алгоритм обхода цели живёт во внешней библиотеке, тут только загрузка
callable по строке "module:attr" из настроек и приведение результата
к GenerationResult.
"""

import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict

from ..utils.validation import ValidationError, safe_filename

logger = logging.getLogger("targetsweeper")


class GenerationError(Exception):
    """Генератор упал или вернул что-то не то."""


@dataclass
class GenerationResult:
    files: Dict[str, bytes]
    summary: Dict[str, Any] = field(default_factory=dict)


def load_generator(path: str) -> Callable[[dict], Any]:
    module_name, _, attr = path.partition(":")
    if not module_name or not attr:
        raise GenerationError(f"Generator must be given as 'module:attribute', got '{path}'")
    try:
        module = importlib.import_module(module_name)
        fn = getattr(module, attr)
    except (ImportError, AttributeError) as e:
        raise GenerationError(f"Cannot load generator '{path}': {e}") from e
    if not callable(fn):
        raise GenerationError(f"Generator '{path}' is not callable")
    return fn


def _coerce(output: Any) -> GenerationResult:
    if isinstance(output, dict):
        output = GenerationResult(files=output.get("files") or {}, summary=output.get("summary") or {})
    if not isinstance(output, GenerationResult):
        raise GenerationError(f"Unexpected generator output: {type(output).__name__}")
    if not output.files:
        raise GenerationError("Generator produced no files")

    files = {}
    for name, data in output.files.items():
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not isinstance(data, (bytes, bytearray)):
            raise GenerationError(f"File {name} is not bytes")
        try:
            name = safe_filename(str(name))
        except ValidationError as e:
            raise GenerationError(f"Bad file name from generator: {name!r}") from e
        files[name] = bytes(data)
    return GenerationResult(files=files, summary=dict(output.summary))


def run_generator(generate: Callable[[dict], Any], request: dict) -> GenerationResult:
    try:
        output = generate(request)
    except Exception as e:
        logger.exception("Generator failed for project %r", request.get("ProjectName"))
        raise GenerationError(str(e) or e.__class__.__name__) from e
    return _coerce(output)
