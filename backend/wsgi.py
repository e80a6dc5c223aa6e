# backend/wsgi.py
from pharmstock import create_app

app = create_app()
