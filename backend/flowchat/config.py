import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

LLM_BASE_URL = os.getenv("LLM_BASE_URL", "http://localhost:8001/v1")
LLM_MODEL = os.getenv("LLM_MODEL", "mistral-7b-instruct")
LLM_API_KEY = os.getenv("LLM_API_KEY")
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.2"))
LLM_TIMEOUT = float(os.getenv("LLM_TIMEOUT", "300"))

MERMAID_RENDER_URL = os.getenv("MERMAID_RENDER_URL", "https://mermaid.ink")
RENDER_TIMEOUT = float(os.getenv("RENDER_TIMEOUT", "30"))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Idle sessions are dropped after SESSION_TTL seconds; the oldest go first past MAX_SESSIONS
SESSION_TTL = float(os.getenv("SESSION_TTL", "3600"))
MAX_SESSIONS = int(os.getenv("MAX_SESSIONS", "1000"))
