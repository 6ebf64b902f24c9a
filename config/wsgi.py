# WSGI (Web Server Gateway Interface) configuration for production deployment

# Used by production servers like Gunicorn or uWSGI:
#   gunicorn config.wsgi:application --bind 0.0.0.0:8000 --workers 4
#
# Each request runs on its own worker thread/process; the core keeps no
# per-process state, so any number of workers can serve the same database.
# ==============================================================================

import os
from django.core.wsgi import get_wsgi_application

# Points to config/settings.py
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_wsgi_application()
