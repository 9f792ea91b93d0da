# hr_portal_api/wsgi.py
from hr_portal_api import create_app

app = create_app()
