# backend/wsgi.py
from bullion_ledger import create_app

app = create_app()
