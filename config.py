import os

from dotenv import load_dotenv

load_dotenv()


class Settings:
    # ---------------------
    # Database & Logging
    # ---------------------
    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./coaching.db")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # `python main.py` dev server
    HOST = os.getenv("HOST", "127.0.0.1")
    PORT = int(os.getenv("PORT", 8000))
    RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

    # Max writes flushed together inside one batch commit
    BATCH_WRITE_LIMIT = int(os.getenv("BATCH_WRITE_LIMIT", 500))

    # ---------------------
    # Admin access
    # ---------------------
    # Empty token = guard disabled (local use)
    ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
    CORS_ORIGINS = [
        o.strip()
        for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
        if o.strip()
    ]

    # ---------------------
    # Photo uploads (Cloudinary)
    # ---------------------
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
    CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "coaching_students")
    PHOTO_MAX_BYTES = int(os.getenv("PHOTO_MAX_BYTES", 800 * 1024))


settings = Settings()
