import os
import logging

from dotenv import load_dotenv

load_dotenv()

MONGODB_URI = os.getenv("MONGODB_URI", "mongodb://localhost:27017")
DATABASE_NAME = os.getenv("DATABASE_NAME", "volunteer_ledger")

SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

DEFAULT_POINTS_PRESENT = int(os.getenv("DEFAULT_POINTS_PRESENT", "10"))
DEFAULT_POINTS_ABSENT = int(os.getenv("DEFAULT_POINTS_ABSENT", "0"))
DEFAULT_POINTS_PENDING = int(os.getenv("DEFAULT_POINTS_PENDING", "5"))

MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "100"))

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
