"""
TARJETA CRC — app/context.py

Contexto por request sobre ContextVars (seguro entre tareas async y hilos
del threadpool de FastAPI, que copian el contexto al despachar).

  - middleware: request_id, method, path al entrar; clear_context() al salir.
  - identity.guards: user_id cuando el access token es válido.
  - logger: get_context_dict() en cada línea.
"""

from __future__ import annotations

from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="")
method_var: ContextVar[str] = ContextVar("method", default="")
path_var: ContextVar[str] = ContextVar("path", default="")
user_id_var: ContextVar[str] = ContextVar("user_id", default="")

_ALL = (request_id_var, method_var, path_var, user_id_var)


def set_request_context(
    *, request_id: str = "", method: str = "", path: str = ""
) -> None:
    request_id_var.set(request_id)
    method_var.set(method)
    path_var.set(path)


def set_user_context(user_id: str) -> None:
    user_id_var.set(user_id or "")


def get_context_dict() -> dict[str, str]:
    """Solo las claves con valor."""
    return {var.name: value for var in _ALL if (value := var.get())}


def clear_context() -> None:
    for var in _ALL:
        var.set("")
