import os

from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./campus_events.db")

# Signs check-in tokens
SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-change-me")

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")
TICKET_DOMAIN = os.getenv("TICKET_DOMAIN", "campus-events.local")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Outgoing mail; empty SMTP_HOST disables delivery
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
MAIL_FROM = os.getenv("MAIL_FROM", "no-reply@campus-events.local")


def get_database_url():
    return DATABASE_URL
