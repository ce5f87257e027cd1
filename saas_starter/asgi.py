# saas_starter/asgi.py
# uvicorn saas_starter.asgi:app
from saas_starter.main import create_app

app = create_app()
