import logging
import time
from contextlib import asynccontextmanager
from typing import Optional

from bson import ObjectId
from bson.errors import InvalidId
from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, Response, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse

from auth import clear_token_cookie, get_current_user, issue_token, set_token_cookie
from config import Settings, get_settings
from database import OrderAlreadyDelivered, PlantStore, StatusAlreadyRequested
from schemas import (
    DeleteAck,
    InsertAck,
    Order,
    Plant,
    QuantityUpdate,
    RoleOut,
    RoleUpdate,
    TokenRequest,
    UpdateAck,
    UserProfile,
)

logger = logging.getLogger("plantnet")

router = APIRouter()


def get_store(request: Request) -> PlantStore:
    return request.app.state.store


def _stringify_ids(value):
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, dict):
        return {k: _stringify_ids(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_stringify_ids(v) for v in value]
    return value


def serialize_doc(doc: Optional[dict]):
    if doc is None:
        return None
    d = _stringify_ids(doc)
    if "_id" in d:
        d["id"] = d.pop("_id")
    return d


# Routes
@router.get("/", response_class=PlainTextResponse)
def root():
    return "Hello from plantNet Server.."


@router.get("/test")
def test_database(store: PlantStore = Depends(get_store)):
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_name": None,
        "connection_status": "Not Connected",
        "collections": [],
    }
    if store is None:
        return response

    response["database_name"] = store.db.name
    try:
        store.ping()
        response["connection_status"] = "Connected"
        response["collections"] = store.db.list_collection_names()[:10]
        response["database"] = "✅ Connected & Working"
    except Exception as e:
        logger.exception("database health check failed")
        response["database"] = f"⚠️  Connected but Error: {str(e)[:50]}"
    return response


# Session endpoints
@router.post("/jwt")
def create_token(payload: TokenRequest, request: Request, response: Response):
    settings = request.app.state.settings
    token = issue_token(payload.model_dump(), settings)
    set_token_cookie(response, token, settings)
    return {"success": True}


@router.get("/logout")
def logout(request: Request, response: Response):
    clear_token_cookie(response, request.app.state.settings)
    return {"success": True}


# User endpoints
@router.post("/users/{email}")
def save_user(email: str, payload: UserProfile, store: PlantStore = Depends(get_store)):
    return serialize_doc(store.upsert_user(email, payload.model_dump(exclude_none=True)))


@router.patch("/users/{email}", response_model=UpdateAck, dependencies=[Depends(get_current_user)])
def request_role_change(email: str, store: PlantStore = Depends(get_store)):
    try:
        result = store.request_status_change(email)
    except StatusAlreadyRequested:
        raise HTTPException(status_code=400, detail="You have already requested, please wait!")
    return UpdateAck.from_result(result)


@router.get("/users/role/{email}", response_model=RoleOut)
def get_user_role(email: str, store: PlantStore = Depends(get_store)):
    return RoleOut(role=store.get_user_role(email))


@router.patch("/users/role/{email}", response_model=UpdateAck, dependencies=[Depends(get_current_user)])
def update_user_role(email: str, payload: RoleUpdate, store: PlantStore = Depends(get_store)):
    return UpdateAck.from_result(store.update_user_role(email, payload.role))


# Plant endpoints
@router.post("/plants", response_model=InsertAck, dependencies=[Depends(get_current_user)])
def create_plant(payload: Plant, store: PlantStore = Depends(get_store)):
    return InsertAck.from_result(store.insert_plant(payload.model_dump(exclude_none=True)))


@router.get("/plants/{plant_id}")
def get_plant(plant_id: str, store: PlantStore = Depends(get_store)):
    return serialize_doc(store.get_plant(plant_id))


@router.get("/plants")
def list_plants(store: PlantStore = Depends(get_store)):
    return [serialize_doc(p) for p in store.list_plants()]


@router.patch("/plants/quantity/{plant_id}", response_model=UpdateAck, dependencies=[Depends(get_current_user)])
def update_plant_quantity(plant_id: str, payload: QuantityUpdate, store: PlantStore = Depends(get_store)):
    result = store.adjust_plant_quantity(plant_id, payload.quantityToUpdate, payload.status)
    return UpdateAck.from_result(result)


# Order endpoints
@router.post("/order", response_model=InsertAck, dependencies=[Depends(get_current_user)])
def create_order(payload: Order, store: PlantStore = Depends(get_store)):
    return InsertAck.from_result(store.insert_order(payload.model_dump(exclude_none=True)))


@router.get("/customar-order/{email}", dependencies=[Depends(get_current_user)])
def list_customer_orders(email: str, store: PlantStore = Depends(get_store)):
    return [serialize_doc(o) for o in store.list_customer_orders(email)]


@router.delete("/orders/{order_id}", response_model=DeleteAck, dependencies=[Depends(get_current_user)])
def delete_order(order_id: str, store: PlantStore = Depends(get_store)):
    try:
        result = store.delete_order(order_id)
    except OrderAlreadyDelivered:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Can't remove the product, This item already delivered!",
        )
    return DeleteAck.from_result(result)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = app.state.settings
    owns_store = app.state.store is None
    if owns_store:
        app.state.store = PlantStore.connect(settings.database_url, settings.database_name)
        app.state.store.ping()
        app.state.store.ensure_indexes()
        logger.info("Pinged your deployment. Connected to MongoDB database %r", settings.database_name)
    try:
        yield
    finally:
        if owns_store:
            app.state.store.close()
            app.state.store = None


def create_app(settings: Optional[Settings] = None, store: Optional[PlantStore] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(title="PlantNet API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            elapsed = (time.perf_counter() - start) * 1000
            logger.exception("%s %s failed after %.1fms", request.method, request.url.path, elapsed)
            raise
        elapsed = (time.perf_counter() - start) * 1000
        logger.info("%s %s %d %.1fms", request.method, request.url.path, response.status_code, elapsed)
        return response

    @app.exception_handler(InvalidId)
    async def invalid_id_handler(request: Request, exc: InvalidId):
        return JSONResponse(status_code=400, content={"detail": "Invalid id"})

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=get_settings().port)
