# backend/wsgi.py
from hayledger import create_app

app = create_app()
