import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import Depends, FastAPI, Header, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pymongo.errors import PyMongoError

from catalog import CatalogConnector
from config import load_settings
from database import db, ensure_indexes
from errors import AdminPanelError, AuthenticationFailed, NotFound, UpstreamUnavailable
from log_config import setup_logging
from rates import RateFetcher
from schemas import LoginRequest, ProductCreate, ProductUpdate, ShopCreate, ShopUpdate, SignupRequest
from sessions import InMemorySessionStore, SessionStore
from storage import DirectoryStore, public_user

settings = load_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(verbose=settings.log_level == "DEBUG", quiet=settings.log_level == "WARNING")
    if db is None:
        logger.warning("ADMIN_MONGODB_URI or MONGODB_URI is not set; directory routes will fail")
    else:
        ensure_indexes(db)
    yield


app = FastAPI(title="Jewelry Admin Panel API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

session_store = InMemorySessionStore()
catalog_connector = CatalogConnector(timeout_ms=settings.shop_db_timeout_ms)
rate_fetcher = RateFetcher(
    url=settings.rates_url,
    interval=settings.rates_cache_seconds,
    timeout=settings.rates_timeout_seconds,
)

# -----------------------------
# Errors
# -----------------------------

@app.exception_handler(AdminPanelError)
async def admin_panel_error_handler(request: Request, exc: AdminPanelError):
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"message": "Invalid request data"})


@app.exception_handler(PyMongoError)
async def directory_error_handler(request: Request, exc: PyMongoError):
    logger.error("Directory database error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# -----------------------------
# Dependencies
# -----------------------------

def get_store() -> DirectoryStore:
    if db is None:
        raise UpstreamUnavailable("Database not available")
    return DirectoryStore(db)


def get_sessions() -> SessionStore:
    return session_store


def get_connector() -> CatalogConnector:
    return catalog_connector


def get_rate_fetcher() -> RateFetcher:
    return rate_fetcher


def get_session_token(authorization: Optional[str] = Header(default=None)) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise AuthenticationFailed()
    return authorization.split(" ", 1)[1].strip()


def get_current_admin(token: str = Depends(get_session_token),
                      sessions: SessionStore = Depends(get_sessions)) -> str:
    user_id = sessions.get(token)
    if not user_id:
        raise AuthenticationFailed()
    return user_id


def get_owned_shop(shop_id: str, user_id: str, store: DirectoryStore) -> Dict[str, Any]:
    # Ownership is resolved before any shop database is contacted
    shop = store.get_shop(shop_id, user_id)
    if not shop:
        raise NotFound("Shop not found")
    return shop


# -----------------------------
# Root
# -----------------------------

@app.get("/")
def read_root():
    return {"message": "Jewelry Admin Panel API is running"}


# -----------------------------
# Auth
# -----------------------------

def _session_response(user: Dict[str, Any], sessions: SessionStore) -> Dict[str, Any]:
    return {"sessionId": sessions.create(user["id"]), "user": public_user(user)}


@app.post("/auth/signup", status_code=201)
def signup(req: SignupRequest, store: DirectoryStore = Depends(get_store),
           sessions: SessionStore = Depends(get_sessions)):
    user = store.create_user(req.email, req.password, req.name)
    return _session_response(user, sessions)


@app.post("/auth/login")
def login(req: LoginRequest, store: DirectoryStore = Depends(get_store),
          sessions: SessionStore = Depends(get_sessions)):
    user = store.authenticate(req.email, req.password)
    if not user:
        raise AuthenticationFailed("Invalid credentials")
    return _session_response(user, sessions)


@app.post("/auth/logout")
def logout(token: str = Depends(get_session_token), user_id: str = Depends(get_current_admin),
           sessions: SessionStore = Depends(get_sessions)):
    sessions.delete(token)
    return {"message": "Logged out successfully"}


@app.get("/auth/me")
def me(user_id: str = Depends(get_current_admin), store: DirectoryStore = Depends(get_store)):
    user = store.get_user(user_id)
    if not user:
        raise NotFound("User not found")
    return public_user(user)


# -----------------------------
# Analytics
# -----------------------------

@app.get("/analytics")
def analytics(user_id: str = Depends(get_current_admin), store: DirectoryStore = Depends(get_store),
              connector: CatalogConnector = Depends(get_connector)):
    shops = store.list_shops(user_id)

    total_products = 0
    total_categories = 0
    category_names = set()
    # One shop at a time; an unreachable shop is skipped, not fatal
    for shop in shops:
        try:
            products = connector.list_products(shop["mongodbUri"])
            categories = connector.list_categories(shop["mongodbUri"])
        except UpstreamUnavailable:
            logger.warning("Skipping shop %s in analytics: shop data unavailable", shop["id"])
            continue
        total_products += len(products)
        total_categories += len(categories)
        category_names.update(c.get("name") for c in categories)

    recent = sorted(shops, key=lambda s: s["createdAt"], reverse=True)[:5]
    return {
        "totalShops": len(shops),
        "totalProducts": total_products,
        "totalCategories": total_categories,
        "uniqueCategories": len(category_names),
        "recentShops": recent,
    }


# -----------------------------
# Shops
# -----------------------------

@app.get("/shops")
def list_shops(user_id: str = Depends(get_current_admin), store: DirectoryStore = Depends(get_store)):
    return store.list_shops(user_id)


@app.post("/shops", status_code=201)
def create_shop(payload: ShopCreate, user_id: str = Depends(get_current_admin),
                store: DirectoryStore = Depends(get_store)):
    return store.create_shop(payload, user_id)


@app.get("/shops/{shop_id}")
def get_shop(shop_id: str, user_id: str = Depends(get_current_admin),
             store: DirectoryStore = Depends(get_store)):
    return get_owned_shop(shop_id, user_id, store)


@app.put("/shops/{shop_id}")
def update_shop(shop_id: str, payload: ShopUpdate, user_id: str = Depends(get_current_admin),
                store: DirectoryStore = Depends(get_store)):
    shop = store.update_shop(shop_id, payload, user_id)
    if not shop:
        raise NotFound("Shop not found")
    return shop


@app.delete("/shops/{shop_id}")
def delete_shop(shop_id: str, user_id: str = Depends(get_current_admin),
                store: DirectoryStore = Depends(get_store)):
    if not store.delete_shop(shop_id, user_id):
        raise NotFound("Shop not found")
    return {"message": "Shop deleted successfully"}


# -----------------------------
# Shop catalog (proxied to the shop's own database)
# -----------------------------

@app.get("/shops/{shop_id}/categories")
def list_shop_categories(shop_id: str, user_id: str = Depends(get_current_admin),
                         store: DirectoryStore = Depends(get_store),
                         connector: CatalogConnector = Depends(get_connector)):
    shop = get_owned_shop(shop_id, user_id, store)
    return connector.list_categories(shop["mongodbUri"])


@app.get("/shops/{shop_id}/products")
def list_shop_products(shop_id: str, category: Optional[str] = None,
                       user_id: str = Depends(get_current_admin),
                       store: DirectoryStore = Depends(get_store),
                       connector: CatalogConnector = Depends(get_connector)):
    shop = get_owned_shop(shop_id, user_id, store)
    return connector.list_products(shop["mongodbUri"], category)


@app.get("/shops/{shop_id}/products/{product_id}")
def get_shop_product(shop_id: str, product_id: str, user_id: str = Depends(get_current_admin),
                     store: DirectoryStore = Depends(get_store),
                     connector: CatalogConnector = Depends(get_connector)):
    shop = get_owned_shop(shop_id, user_id, store)
    product = connector.get_product(shop["mongodbUri"], product_id)
    if not product:
        raise NotFound("Product not found")
    return product


@app.post("/shops/{shop_id}/products", status_code=201)
def create_shop_product(shop_id: str, payload: ProductCreate, user_id: str = Depends(get_current_admin),
                        store: DirectoryStore = Depends(get_store),
                        connector: CatalogConnector = Depends(get_connector)):
    shop = get_owned_shop(shop_id, user_id, store)
    return connector.create_product(shop["mongodbUri"], payload)


@app.put("/shops/{shop_id}/products/{product_id}")
def update_shop_product(shop_id: str, product_id: str, payload: ProductUpdate,
                        user_id: str = Depends(get_current_admin),
                        store: DirectoryStore = Depends(get_store),
                        connector: CatalogConnector = Depends(get_connector)):
    shop = get_owned_shop(shop_id, user_id, store)
    product = connector.update_product(shop["mongodbUri"], product_id, payload)
    if not product:
        raise NotFound("Product not found")
    return product


@app.delete("/shops/{shop_id}/products/{product_id}")
def delete_shop_product(shop_id: str, product_id: str, user_id: str = Depends(get_current_admin),
                        store: DirectoryStore = Depends(get_store),
                        connector: CatalogConnector = Depends(get_connector)):
    shop = get_owned_shop(shop_id, user_id, store)
    if not connector.delete_product(shop["mongodbUri"], product_id):
        raise NotFound("Product not found")
    return {"message": "Product deleted successfully"}


# -----------------------------
# Public rates
# -----------------------------

@app.get("/rates")
def metal_rates(fetcher: RateFetcher = Depends(get_rate_fetcher)):
    return fetcher.get_rates().model_dump(by_alias=True)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
