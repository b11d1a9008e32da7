import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
    ALGORITHM = os.getenv("ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_HOURS = int(os.getenv("ACCESS_TOKEN_EXPIRE_HOURS", 24))
    DATABASE_URL = os.getenv("DATABASE_URL", "mongodb://localhost:27017")
    DATABASE_NAME = os.getenv("DATABASE_NAME", "classroom_db")
    DEFAULT_QUIZ_TIME_LIMIT = int(os.getenv("DEFAULT_QUIZ_TIME_LIMIT", 10))
    CLASS_CODE_MAX_ATTEMPTS = int(os.getenv("CLASS_CODE_MAX_ATTEMPTS", 50))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
