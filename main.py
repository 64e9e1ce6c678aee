import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from pymongo import ReturnDocument
from pymongo.collection import Collection
from pymongo.errors import PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from config import settings
from database import connect, get_collection, get_restaurants, parse_object_id
from models import (
    QUERYABLE_FIELDS,
    REQUIRED_FIELDS,
    UPDATABLE_FIELDS,
    api_repr,
    new_restaurant,
)
from schemas import Message, RestaurantList, RestaurantOut

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

LIST_LIMIT = 10
INTERNAL_ERROR = "Internal server error"
NOT_FOUND = "Not Found"

router = APIRouter(tags=["restaurants"])

# Helpers

def store_error(exc: Exception) -> HTTPException:
    logger.error("Store operation failed: %s", exc, exc_info=exc)
    return HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, detail=INTERNAL_ERROR)


def not_found(restaurant_id: str) -> HTTPException:
    return HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Restaurant {restaurant_id} not found")


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"message": exc.detail}, headers=exc.headers)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled exception on %s %s", request.method, request.url)
    return JSONResponse(status_code=500, content={"message": INTERNAL_ERROR})


_errors = {404: {"model": Message}, 500: {"model": Message}}

# Routes

@router.get("/restaurants/", include_in_schema=False, response_model=RestaurantList, response_model_exclude_none=True)
@router.get(
    "/restaurants",
    response_model=RestaurantList,
    response_model_exclude_none=True,
    responses={500: {"model": Message}},
)
def list_restaurants(request: Request, restaurants: Collection = Depends(get_restaurants)):
    query = {}
    for field in QUERYABLE_FIELDS:
        if field in request.query_params:
            query[field] = request.query_params[field]
    try:
        docs = list(restaurants.find(query).limit(LIST_LIMIT))
    except PyMongoError as exc:
        raise store_error(exc) from exc
    return {"restaurants": [api_repr(d) for d in docs]}


@router.get(
    "/restaurants/{restaurant_id}",
    response_model=RestaurantOut,
    response_model_exclude_none=True,
    responses=_errors,
)
def get_restaurant(restaurant_id: str, restaurants: Collection = Depends(get_restaurants)):
    oid = parse_object_id(restaurant_id)
    if oid is None:
        raise not_found(restaurant_id)
    try:
        doc = restaurants.find_one({"_id": oid})
    except PyMongoError as exc:
        raise store_error(exc) from exc
    if not doc:
        raise not_found(restaurant_id)
    return api_repr(doc)


@router.post(
    "/restaurants/",
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
    response_model=RestaurantOut,
    response_model_exclude_none=True,
)
@router.post(
    "/restaurants",
    status_code=status.HTTP_201_CREATED,
    response_model=RestaurantOut,
    response_model_exclude_none=True,
    responses={400: {"content": {"text/plain": {}}}, 500: {"model": Message}},
)
def create_restaurant(body: dict = Body(...), restaurants: Collection = Depends(get_restaurants)):
    for field in REQUIRED_FIELDS:
        if field not in body:
            message = f"Missing `{field}` in request body"
            logger.error(message)
            return PlainTextResponse(message, status_code=status.HTTP_400_BAD_REQUEST)

    doc = new_restaurant(body)
    try:
        res = restaurants.insert_one(doc)
    except PyMongoError as exc:
        raise store_error(exc) from exc
    doc["_id"] = res.inserted_id
    return api_repr(doc)


@router.put(
    "/restaurants/{restaurant_id}",
    status_code=status.HTTP_202_ACCEPTED,
    response_model=RestaurantOut,
    response_model_exclude_none=True,
    responses={400: {"model": Message}, **_errors},
)
def update_restaurant(
    restaurant_id: str,
    body: dict = Body(...),
    restaurants: Collection = Depends(get_restaurants),
):
    body_id = body.get("id")
    if not (restaurant_id and body_id and restaurant_id == body_id):
        message = (
            f"Request path id ({restaurant_id}) and request body id "
            f"({body_id}) must match"
        )
        logger.error(message)
        raise HTTPException(status.HTTP_400_BAD_REQUEST, detail=message)

    oid = parse_object_id(restaurant_id)
    if oid is None:
        raise not_found(restaurant_id)

    to_update = {field: body[field] for field in UPDATABLE_FIELDS if field in body}
    try:
        if to_update:
            doc = restaurants.find_one_and_update(
                {"_id": oid},
                {"$set": to_update},
                return_document=ReturnDocument.AFTER,
            )
        else:
            doc = restaurants.find_one({"_id": oid})
    except PyMongoError as exc:
        raise store_error(exc) from exc
    if not doc:
        raise not_found(restaurant_id)
    return api_repr(doc)


@router.delete(
    "/restaurants/{restaurant_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    responses={500: {"model": Message}},
)
def delete_restaurant(restaurant_id: str, restaurants: Collection = Depends(get_restaurants)):
    oid = parse_object_id(restaurant_id)
    if oid is not None:
        try:
            restaurants.delete_one({"_id": oid})
        except PyMongoError as exc:
            raise store_error(exc) from exc
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Catch-all, declared last so every unmatched path and method lands here
@router.api_route(
    "/{path:path}",
    methods=["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"],
    include_in_schema=False,
)
def fallback(path: str):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"message": NOT_FOUND})


# App setup

@asynccontextmanager
async def lifespan(app: FastAPI):
    # server.start() hands over a ready collection; uvicorn main:app does not
    if app.state.restaurants is not None:
        yield
        return
    client = connect(settings.database_url)
    app.state.restaurants = get_collection(client)
    try:
        yield
    finally:
        logger.info("Closing MongoDB connection")
        client.close()
        app.state.restaurants = None


def create_app(restaurants: Optional[Collection] = None) -> FastAPI:
    """Build the API. Pass a collection to skip connecting on startup."""
    app = FastAPI(title="Restaurants API", lifespan=lifespan)
    app.state.restaurants = restaurants
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.host, port=settings.port)
