"""
ASGI entrypoint: expose `app` for process managers / deployments.

- En production, un process manager (ex: gunicorn/uvicorn-workers) importe `paycore.asgi:app`.
- Toute la configuration est centralisée dans paycore.app_setup.factory.
"""
from paycore.app_setup.factory import create_app

app = create_app()
