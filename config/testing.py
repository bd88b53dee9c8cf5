import os

from config.base import WORKPULSE, db_config, env_flag

SECRET_KEY = "test-secret"

DB_CONFIG = db_config()

DEBUG = False
TESTING = True
LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING")

AUTO_INIT_DB = env_flag("AUTO_INIT_DB", "0")
AUTO_SEED_DB = env_flag("AUTO_SEED_DB", "0")

# Never call the real geocoder from tests.
WORKPULSE = dict(WORKPULSE, GEOCODER_URL="")
