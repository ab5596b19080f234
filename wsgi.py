#!/usr/bin/env python3
"""
WSGI Entry Point for Production Deployment
Use with: gunicorn wsgi:app
"""

import os

# Set production environment
os.environ.setdefault('FLASK_ENV', 'production')

from statsor.config import configure_logging
from statsor.main import create_app

configure_logging()

# Create application instance
app = create_app()
