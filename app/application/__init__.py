"""
===============================================================================
APPLICATION LAYER (Public API / Exports)
===============================================================================

Expone los puntos de entrada estables de la capa de aplicación:
  - views: proyecciones públicas de User (perfil / admin)

Nota:
  - Los casos de uso se importan desde `usecases/auth`.
===============================================================================
"""

from .views import PROFILE_FIELDS, to_admin_view, to_profile_view

__all__ = [
    "PROFILE_FIELDS",
    "to_admin_view",
    "to_profile_view",
]
