"""
============================================================
TARJETA CRC — app/infrastructure/__init__.py
============================================================
Module: infrastructure (adaptadores concretos)

Responsibilities:
  - Agrupar adaptadores: DB (pool + repos), caché de perfil, mail.
  - Sin side effects: los subpaquetes se importan explícitamente.

Collaborators:
  - app.container (composition root)
============================================================
"""
