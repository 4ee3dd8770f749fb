# backend/wsgi.py
from retaildesk import create_app

app = create_app()
