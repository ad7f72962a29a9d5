from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional

class UploadResponse(BaseModel):
    name: str = Field(..., description="Имя загруженного файла")
    url: str = Field(..., description="Публичная ссылка на файл")

class GenerateRequest(BaseModel):
    # имена полей как в клиенте TargetSweeper, лишние поля уходят в генератор как есть
    ProjectName: Optional[str] = Field(None, description="Имя проекта (база для имени папки)")
    Target: Dict[str, Any] = Field(default_factory=dict, description="Цель: name, latitude, longitude")
    Sweeper: Dict[str, Any] = Field(default_factory=dict, description="Параметры обхода")

    model_config = ConfigDict(extra="allow")

class GenerateResponse(BaseModel):
    kmlUrl: Optional[str] = None
    csvUrl: Optional[str] = None
    kmzUrl: Optional[str] = None
    files: List[str] = Field(default_factory=list, description="Ссылки на все файлы проекта")
    summary: Dict[str, Any] = Field(default_factory=dict)

class ErrorResponse(BaseModel):
    detail: str
