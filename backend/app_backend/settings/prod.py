from .settings import *
import os
from dotenv import load_dotenv
load_dotenv(os.path.join(BASE_DIR, '..', '.env'))

DEBUG = False
SECRET_KEY = os.environ["DJANGO_SECRET_KEY"]
ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(',')

SIMPLE_JWT = {
    **SIMPLE_JWT,
    "SIGNING_KEY": os.environ["JWT_SECRET"],
}

LOGGING["loggers"]["realtime"]["level"] = os.getenv("REALTIME_LOG_LEVEL", "INFO")
