"""FastAPI application main entry point"""
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vetassist.core.config import Config
from vetassist.api.routes import router

Config.validate()
Config.ensure_directories()
Config.setup_logging()

app = FastAPI(
    title=Config.get("api", "title", default="VetAssist Assistant Service"),
    description=Config.get("api", "description", default="Natural-language patient and medication extraction"),
    version=Config.get("api", "version", default="1.0.0")
)

cors_config = Config.get("api", "cors", default={})
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_config.get("allow_origins", ["*"]),
    allow_credentials=cors_config.get("allow_credentials", True),
    allow_methods=cors_config.get("allow_methods", ["*"]),
    allow_headers=cors_config.get("allow_headers", ["*"]),
)
app.include_router(router)


@app.get("/")
async def root():
    """Service name and where to find docs and health"""
    endpoints = Config.get("api", "endpoints", default={})
    return {
        "message": Config.get("api", "title", default="VetAssist Assistant Service"),
        "version": Config.get("api", "version", default="1.0.0"),
        "docs": endpoints.get("docs", "/docs"),
        "health": endpoints.get("health", "/health")
    }
