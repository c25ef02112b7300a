"""
Gunicorn entry point: gunicorn wsgi:app

APP_CONFIG selects the config class (default config.Config).
"""
import os
import sys

sys.path.insert(0, os.path.dirname(__file__))

from posorder import create_app

app = create_app(os.getenv('APP_CONFIG', 'config.Config'))
