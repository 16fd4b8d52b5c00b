import os
import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import yaml
from bson import ObjectId
from bson.errors import BSONError
from fastapi import FastAPI, Body, Depends, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from pymongo.errors import PyMongoError

from database import ANIMES, SCHEDULES, USERS, Catalog, Settings, connect
from schemas import MEDIA_TYPES, SCHEDULE_REQUIRED, LoginRequest, NewUserRequest, User, VisitorStats


class ApiError(Exception):
    """Rendered as {key: message} with the given status."""

    def __init__(self, message: str, status_code: int, key: str = "error"):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.key = key


class ClientError(ApiError):
    """Missing input, malformed id, unknown id or duplicate."""

    def __init__(self, message: str, status_code: int = 400, key: str = "error"):
        super().__init__(message, status_code, key)


class ServerError(ApiError):
    def __init__(self, message: str):
        super().__init__(message, 500)


def init_logger(config_path: str) -> logging.Logger:
    try:
        with open(config_path, "r") as f:
            config = yaml.safe_load(f)
        logging.config.dictConfig(config)
        logger = logging.getLogger("catalog")
        logger.debug("Logger configured")
        return logger
    except Exception as e:
        logging.basicConfig(level=logging.INFO)
        logger = logging.getLogger("catalog")
        logger.error(f"Logger initialization failed: {e}")
        return logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    logger = init_logger(settings.log_config)
    app.state.settings = settings
    app.state.catalog = None

    try:
        app.state.catalog = connect(settings)
    except (PyMongoError, ValueError) as e:
        logger.error(f"Error connecting to MongoDB: {e}")

    if app.state.catalog is not None:
        try:
            app.state.catalog.seed_admin(settings)
        except PyMongoError as e:
            logger.error(f"Error inserting admin user: {e}")

    yield

    if app.state.catalog is not None:
        app.state.catalog.close()
    logger.info("Application shutdown")


app = FastAPI(
    title="Anime Catalog API",
    version="1.0.0",
    description="Media catalog, schedules and visitor counters",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(Settings.from_env().allowed_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = logging.getLogger("catalog")


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={exc.key: exc.message})


@app.exception_handler(BSONError)
@app.exception_handler(PyMongoError)
async def database_error_handler(request: Request, exc: Exception):
    logger.error(f"Database error on {request.method} {request.url.path}", exc_info=exc)
    return JSONResponse(status_code=500, content={"error": str(exc)})


# Body shape errors keep the route's presence-check message
BODY_ERRORS = {
    "/api/login": "Email and password are required",
    "/api/add-user": "All fields are required!",
    "/api/schedules": "All fields are required!",
}


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.debug(f"Rejected body on {request.method} {request.url.path}: {exc.errors()}")
    message = BODY_ERRORS.get(request.url.path, "Request body must be a JSON object")
    return JSONResponse(status_code=400, content={"error": message})


def get_catalog(request: Request) -> Catalog:
    catalog = getattr(request.app.state, "catalog", None)
    if catalog is None:
        raise ServerError("Database not available")
    return catalog


def require_object_id(doc_id: str) -> str:
    if not ObjectId.is_valid(doc_id):
        raise ClientError("Invalid ObjectId format")
    return doc_id


@app.get("/", response_class=PlainTextResponse)
def read_root():
    return "Server is working fine!"


@app.get("/test")
def test_database(request: Request):
    """Report whether the catalog database is reachable and list its collections."""
    response = {
        "backend": "running",
        "database": "not available",
        "database_url": None,
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": []
    }

    catalog = getattr(request.app.state, "catalog", None)
    if catalog is not None:
        response["database"] = "available"
        response["database_name"] = catalog.name
        response["connection_status"] = "Connected"
        try:
            collections = catalog.db.list_collection_names()
            response["collections"] = collections[:10]
            response["database"] = "connected"
        except PyMongoError as e:
            response["database"] = f"error: {str(e)[:50]}"

    response["database_url"] = "set" if (os.getenv("DATABASE_URL") or os.getenv("MONGO_URI")) else "not set"
    return response


# ===== Users =====

@app.post("/api/login")
def login(payload: LoginRequest, catalog: Catalog = Depends(get_catalog)):
    if not payload.email or not payload.password:
        raise ClientError("Email and password are required")

    user = catalog.find_user(payload.email)
    # Plaintext comparison, kept for compatibility with existing records
    if not user or user.get("password") != payload.password:
        raise ClientError("Invalid email or password")

    return {
        "message": "Login successful",
        "user": {"email": user["user"], "role": user.get("role")},
    }


@app.post("/api/add-user", status_code=201)
def add_user(payload: NewUserRequest, catalog: Catalog = Depends(get_catalog)):
    if not payload.user or not payload.password or not payload.role:
        raise ClientError("All fields are required!")

    if catalog.find_user(payload.user):
        raise ClientError("User already exists!")

    catalog.create_document(USERS, User(user=payload.user, password=payload.password, role=payload.role))
    logger.info(f"User {payload.user} added with role {payload.role}")
    return {"message": "User added successfully!"}


# ===== Media entries =====

@app.post("/api/anime")
def add_anime(payload: Dict[str, Any] = Body(...), catalog: Catalog = Depends(get_catalog)):
    inserted_id = catalog.create_document(ANIMES, payload)
    return {"message": "Anime added!", "id": inserted_id}


def list_media(catalog: Catalog, media_type: Optional[str] = None) -> List[dict]:
    filter_dict = {} if media_type is None else {"type": media_type}
    return catalog.get_documents(ANIMES, filter_dict)


@app.get("/api/all-anime")
def list_all_anime(
    media_type: Optional[str] = Query(None, alias="type", description="Only entries with this exact type"),
    catalog: Catalog = Depends(get_catalog),
):
    return list_media(catalog, media_type)


def media_type_route(media_type: str):
    def list_by_type(catalog: Catalog = Depends(get_catalog)):
        return list_media(catalog, media_type)
    return list_by_type


for path, media_type in MEDIA_TYPES.items():
    app.add_api_route(
        f"/api/{path}",
        media_type_route(media_type),
        methods=["GET"],
        name=f"list_{path}",
        summary=f"List {media_type} entries",
    )


@app.get("/api/anime/{anime_id}")
def get_anime(anime_id: str, catalog: Catalog = Depends(get_catalog)):
    anime = catalog.get_document(ANIMES, require_object_id(anime_id))
    if anime is None:
        raise ClientError("Anime not found!", status_code=404)
    return anime


@app.patch("/api/anime/{anime_id}")
def update_anime(anime_id: str, payload: Dict[str, Any] = Body(...), catalog: Catalog = Depends(get_catalog)):
    require_object_id(anime_id)
    fields = {k: v for k, v in payload.items() if k != "_id"}
    if not fields:
        raise ClientError("No fields to update")

    logger.debug(f"Update data for {anime_id}: {fields}")
    result = catalog.update_document(ANIMES, anime_id, fields)
    logger.debug(f"Update result: matched={result.matched_count} modified={result.modified_count}")

    # Unknown id and identical values both leave modified_count at 0
    if result.modified_count == 0:
        raise ClientError("No anime found or no changes made!", status_code=404, key="message")

    return {"message": "Anime updated successfully!", "modified": result.modified_count}


@app.delete("/api/anime/{anime_id}")
def delete_anime(anime_id: str, catalog: Catalog = Depends(get_catalog)):
    if catalog.delete_document(ANIMES, require_object_id(anime_id)) == 0:
        raise ClientError("Anime not found!", status_code=404, key="message")
    return {"message": "Anime deleted successfully!"}


# ===== Schedules =====

@app.post("/api/schedules", status_code=201)
def add_schedule(payload: Dict[str, Any] = Body(...), catalog: Catalog = Depends(get_catalog)):
    if any(not payload.get(field) for field in SCHEDULE_REQUIRED):
        raise ClientError("All fields are required!")

    inserted_id = catalog.create_document(SCHEDULES, payload)
    return {"message": "Schedule added!", "id": inserted_id}


@app.get("/api/schedules")
def list_schedules(catalog: Catalog = Depends(get_catalog)):
    return catalog.get_documents(SCHEDULES)


# ===== Visitors =====

@app.post("/api/track-visitor")
def track_visitor(catalog: Catalog = Depends(get_catalog)):
    catalog.track_visitor()
    return {"message": "Visitor Tracked"}


@app.get("/api/visitor-view", response_model=VisitorStats)
def visitor_view(catalog: Catalog = Depends(get_catalog)):
    return catalog.visitor_stats()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=Settings.from_env().port)
