from fastapi import Request

from .services.storage import ProjectStore


def get_store(request: Request) -> ProjectStore:
    # хранилище одно на процесс, создаётся в main.py
    return request.app.state.store


def get_generator(request: Request):
    return request.app.state.generator
