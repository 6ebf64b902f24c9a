# ASGI (Asynchronous Server Gateway Interface) configuration

# Production servers:
# - Uvicorn:   uvicorn config.asgi:application
# - Hypercorn: hypercorn config.asgi:application
#
# The API views are synchronous; Django runs them in a thread pool under ASGI.
# ==============================================================================

import os
from django.core.asgi import get_asgi_application

# Set the default Django settings module
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'config.settings')

application = get_asgi_application()
