from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from fastapi.openapi.utils import get_openapi
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.middleware.sessions import SessionMiddleware

from app_logging import logger
from config import DEFAULT_SESSION_SECRET, settings
from cors_config import add_cors
from database import get_db, init_db, ping
from errors import configure_error_handlers
from routers import auth, case_attempts, cases, student_work


@asynccontextmanager
async def lifespan(_: FastAPI):
    init_db()
    if settings.SESSION_SECRET == DEFAULT_SESSION_SECRET and not settings.DEBUG:
        logger.warning("SESSION_SECRET is the built-in default; session cookies can be forged. Set SESSION_SECRET.")
    logger.info(f"{settings.APP_NAME} started")
    yield


# Initialize FastAPI
app = FastAPI(
    title=settings.APP_NAME,
    description="API for optometry case authoring by professors and case attempts by students.",
    version=settings.VERSION,
    lifespan=lifespan,
)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.SESSION_SECRET,
    session_cookie=settings.SESSION_COOKIE_NAME,
    max_age=settings.SESSION_MAX_AGE_SECONDS,
    same_site="lax",
    https_only=settings.SESSION_HTTPS_ONLY,
)
add_cors(app)
configure_error_handlers(app)

app.include_router(auth.router, tags=["Auth"])
app.include_router(case_attempts.router, tags=["Case Attempts"])
app.include_router(cases.router, tags=["Cases"])
app.include_router(student_work.router, tags=["Student Work"])


@app.get("/db-ping", summary="Database Ping", description="Check that the database answers a trivial query.")
def db_ping(db: Session = Depends(get_db)):
    try:
        result = ping(db)
    except SQLAlchemyError as e:
        logger.error(f"DB ping failed: {e}")
        return JSONResponse(status_code=500, content={"db": "error"})
    return {"db": "connected", "result": result}


# Custom OpenAPI schema
def custom_openapi():
    if app.openapi_schema:
        return app.openapi_schema
    openapi_schema = get_openapi(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Professors author multi-step clinical cases; students work through them one attempt per case.",
        routes=app.routes,
    )
    openapi_schema["info"]["x-logo"] = {"url": "https://fastapi.tiangolo.com/img/logo-margin/logo-teal.png"}
    app.openapi_schema = openapi_schema
    return app.openapi_schema


app.openapi = custom_openapi

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
