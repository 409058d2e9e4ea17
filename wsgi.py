# wsgi.py
from ikimina import create_app

application = create_app()
