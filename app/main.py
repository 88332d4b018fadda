"""
Name: ASGI Entrypoint (app.main)

Responsibilities:
  - Expose the identity service app as `app.main:app` for uvicorn
  - Allow `python -m app.main` for local runs

Notes:
  - Wiring lives in app.api.main; this module only hands it to the server
"""

from app.api.main import app

__all__ = ["app"]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
