from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from config import settings


def add_cors(app: FastAPI) -> None:
    # Credentials must be allowed for the session cookie to travel cross-origin.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
