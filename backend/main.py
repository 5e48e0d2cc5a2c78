import logging

from fastapi import FastAPI

from api import chat_router
from env_loader import load_env_once, load_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Weather Assistant Backend")


@app.on_event("startup")
async def startup() -> None:
    load_env_once()
    settings = load_settings()
    missing = [
        name
        for name, value in (
            ("OPENAI_API_KEY", settings.openai_api_key),
            ("OPENAI_ASSISTANT_ID", settings.openai_assistant_id),
            ("OPENWEATHER_API_KEY", settings.openweather_api_key),
        )
        if not value
    ]
    if missing:
        logger.warning("Missing configuration: %s", ", ".join(missing))


app.include_router(chat_router)


@app.get("/")
async def root():
    return {"message": "Hello World"}
